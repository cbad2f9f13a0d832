# chain/evm_ledger.py
"""
Native-coin transfers on the EVM sidechain from the custodial account.
Pattern: pin chain id -> price fees -> sign -> send -> wait for receipt
-> classify by receipt status.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted
from web3.middleware import ExtraDataToPOAMiddleware

from errors import BackendUnavailable, ChainRejected, ConfigurationError, SettlementTimeout
from models import ChainKind, SettlementResult

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

TRANSFER_GAS = 21_000
LEGACY_GAS_PRICE_BUMP = 3                 # x network gas price
FALLBACK_GAS_PRICE_WEI = 50 * 10**9       # 50 gwei


def is_valid_address(address: str) -> bool:
    if not address or not _ADDRESS_RE.match(address):
        return False
    digits = address[2:]
    if digits == digits.lower() or digits == digits.upper():
        return True
    # mixed case must pass the EIP-55 checksum
    return Web3.is_checksum_address(address)


def make_web3(rpc_url: str, timeout: int = 30) -> Web3:
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
    # POA sidechains put extra bytes in extraData
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


class EvmLedgerClient:
    chain = ChainKind.EVM.value

    def __init__(
        self,
        w3: Web3,
        account: LocalAccount,
        chain_id: int,
        receipt_timeout: int = 120,
    ):
        self.w3 = w3
        self.account = account
        self.chain_id = int(chain_id)
        self.receipt_timeout = receipt_timeout

    @property
    def account_address(self) -> str:
        return self.account.address

    def check_balance(self) -> int:
        try:
            return int(self.w3.eth.get_balance(self.account.address))
        except Exception as e:
            raise BackendUnavailable(f"EVM balance lookup failed: {e}")

    def _ensure_chain(self):
        reported = self.w3.eth.chain_id
        if int(reported) != self.chain_id:
            raise ConfigurationError(
                f"RPC reports chain id {reported}, configured EVM_CHAIN_ID is {self.chain_id}"
            )

    def fee_fields(self) -> Dict[str, Any]:
        """
        Dynamic fees when the latest block has a base fee, else a bumped
        legacy gas price, else a hardcoded fallback. Sidechains often
        misreport or omit fee-market data.
        """
        try:
            base_fee = self.w3.eth.get_block("latest").get("baseFeePerGas")
            if base_fee is not None:
                priority = self.w3.eth.max_priority_fee
                return {
                    "type": 2,
                    "maxFeePerGas": base_fee * 2 + priority,
                    "maxPriorityFeePerGas": priority,
                }
        except Exception as e:
            logger.warning("EIP-1559 fee fetch failed: %s", e)

        try:
            return {"gasPrice": self.w3.eth.gas_price * LEGACY_GAS_PRICE_BUMP}
        except Exception as e:
            logger.warning("gasPrice fetch failed, using fallback: %s", e)

        return {"gasPrice": FALLBACK_GAS_PRICE_WEI}

    def build_transfer(self, to: str, units: int) -> Dict[str, Any]:
        tx = {
            "to": Web3.to_checksum_address(to),
            "value": int(units),
            "gas": TRANSFER_GAS,
            "chainId": self.chain_id,
            "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
        }
        tx.update(self.fee_fields())
        return tx

    def submit_payment(
        self, to: str, units: int, memo: Optional[str] = None
    ) -> SettlementResult:
        # memo has no carrier on a plain value transfer
        tx_hash = None
        try:
            self._ensure_chain()
            tx = self.build_transfer(to, units)
            signed = self.account.sign_transaction(tx)
            tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed.raw_transaction))
            logger.info("Submitted EVM transfer: to=%s wei=%d tx=%s", to, units, tx_hash)

            try:
                receipt = self.w3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.receipt_timeout
                )
            except TimeExhausted as e:
                logger.warning("Receipt timeout: tx=%s", tx_hash)
                return SettlementResult.failed(
                    SettlementTimeout.kind,
                    f"Transaction submitted ({tx_hash}) but not confirmed: {e}",
                    tx_hash,
                )

            if receipt["status"] != 1:
                logger.warning("EVM transfer REVERTED: tx=%s", tx_hash)
                return SettlementResult.failed(
                    ChainRejected.kind, f"Tx failed: {tx_hash}", tx_hash
                )

            logger.info("EVM transfer confirmed: tx=%s gasUsed=%s", tx_hash, receipt.get("gasUsed"))
            return SettlementResult.settled(tx_hash, units)

        except ConfigurationError as e:
            logger.error(e.message)
            return SettlementResult.failed(e.kind, e.message, tx_hash)
        except Exception as e:
            logger.exception("EVM transfer failed")
            kind = SettlementTimeout.kind if tx_hash else BackendUnavailable.kind
            return SettlementResult.failed(kind, str(e), tx_hash)
