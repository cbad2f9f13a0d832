# claim_service.py
"""
Reward claim orchestration.

Pattern: validate -> resolve amount -> pick ledger client -> balance
pre-check -> submit -> wait for finality -> classify.

Single pass, no retries. Each claim is at most one submission attempt;
nothing is persisted, so a caller that retries after a timeout must
first reconcile by txReference or it may pay twice.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Mapping, Tuple

from chain import evm_ledger, native_ledger
from chain.base import LedgerClient
from errors import (
    InsufficientFunds,
    InvalidRecipient,
    RewardsError,
    SettlementTimeout,
    UnsupportedChain,
)
from models import ChainKind, ClaimRequest, PayoutConfig, SettlementResult
from payout_policy import resolve_amount

logger = logging.getLogger(__name__)

ADDRESS_VALIDATORS: Dict[ChainKind, Callable[[str], bool]] = {
    ChainKind.NATIVE: native_ledger.is_valid_address,
    ChainKind.EVM: evm_ledger.is_valid_address,
}


def parse_chain(value) -> ChainKind:
    if isinstance(value, ChainKind):
        return value
    try:
        return ChainKind(str(value).strip().lower())
    except ValueError:
        raise UnsupportedChain(f"Unsupported chain: {value!r}")


class ClaimService:
    def __init__(
        self,
        ledger_for: Callable[[ChainKind], LedgerClient],
        policies: Mapping[ChainKind, PayoutConfig],
    ):
        self._ledger_for = ledger_for
        self._policies = policies
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _account_lock(self, chain: ChainKind, address: str) -> threading.Lock:
        key = (chain.value, address.lower())
        with self._locks_guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    def validate(self, req: ClaimRequest) -> ChainKind:
        chain = parse_chain(req.chain)
        if chain not in self._policies:
            raise UnsupportedChain(f"Unsupported chain: {chain.value}")

        validator = ADDRESS_VALIDATORS[chain]
        if not req.recipient_address or not validator(req.recipient_address):
            raise InvalidRecipient("Invalid or missing recipientAddress")
        return chain

    def claim(self, req: ClaimRequest) -> SettlementResult:
        """Run one claim end to end. Never raises; failures come back typed."""
        try:
            chain = self.validate(req)
            amount = resolve_amount(req.points, req.explicit_amount, self._policies[chain])
        except RewardsError as e:
            logger.warning("Claim rejected: %s (%s)", e.kind, e.message)
            return SettlementResult.rejected(e.kind, e.message)

        try:
            ledger = self._ledger_for(chain)
        except RewardsError as e:
            logger.error("Claim failed before submission: %s", e.message)
            return SettlementResult.failed(e.kind, e.message)

        if req.recipient_address.lower() == ledger.account_address.lower():
            logger.warning("Claim rejected: recipient is the custodial account")
            return SettlementResult.rejected(
                InvalidRecipient.kind, "recipientAddress is the disbursing account"
            )

        # one in-flight submission per custodial account keeps sequence/nonce ordered
        with self._account_lock(chain, ledger.account_address):
            try:
                balance = ledger.check_balance()
            except RewardsError as e:
                return SettlementResult.failed(e.kind, e.message)

            if balance < amount:
                logger.warning(
                    "Custodial %s account underfunded: balance=%d needed=%d",
                    chain.value, balance, amount,
                )
                return SettlementResult.rejected(
                    InsufficientFunds.kind,
                    f"Custodial balance {balance} below claim amount {amount}",
                )

            logger.info(
                "Claim submitting: chain=%s to=%s units=%d",
                chain.value, req.recipient_address, amount,
            )
            try:
                result = ledger.submit_payment(req.recipient_address, amount, req.memo)
            except Exception as e:
                # outcome unknown: the transfer may or may not have been sent
                logger.exception("Ledger client raised during submission")
                result = SettlementResult.failed(SettlementTimeout.kind, str(e))

        if result.ok:
            logger.info("Claim settled: chain=%s tx=%s", chain.value, result.tx_reference)
        else:
            logger.warning(
                "Claim failed: chain=%s kind=%s reason=%s tx=%s",
                chain.value, result.error_kind, result.failure_reason, result.tx_reference,
            )
        return result
