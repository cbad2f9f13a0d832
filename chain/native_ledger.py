# chain/native_ledger.py
"""
Native XRP Ledger payments from the custodial wallet.

Pattern: open session -> autofill + sign locally -> submit and wait for
validation -> classify engine result -> close session.
Every call opens its own websocket session and closes it on every exit
path; nothing is kept open between claims.
"""
from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from xrpl.account import get_account_root
from xrpl.clients import WebsocketClient, XRPLRequestFailureException
from xrpl.core.addresscodec import is_valid_classic_address
from xrpl.models.exceptions import XRPLModelException
from xrpl.models.requests import ServerState
from xrpl.models.transactions import Memo, Payment
from xrpl.transaction import (
    XRPLReliableSubmissionException,
    autofill_and_sign,
    submit_and_wait,
)
from xrpl.wallet import Wallet

from errors import BackendUnavailable, ChainRejected, SettlementTimeout, ValidationError
from models import ChainKind, SettlementResult

logger = logging.getLogger(__name__)

SUCCESS_CODE = "tesSUCCESS"
MEMO_TYPE = "text/plain"

_RESULT_CODE_RE = re.compile(r"\b(te[cflmrs][A-Z_]+)\b")


def is_valid_address(address: str) -> bool:
    return bool(address) and is_valid_classic_address(address)


def encode_memo(memo: str) -> Memo:
    """Memo fields travel as upper-case hex of their UTF-8 bytes."""
    return Memo(
        memo_type=MEMO_TYPE.encode("utf-8").hex().upper(),
        memo_data=memo.encode("utf-8").hex().upper(),
    )


def classify_engine_result(
    engine_result: Optional[str], tx_hash: Optional[str], units: int
) -> SettlementResult:
    if engine_result == SUCCESS_CODE:
        return SettlementResult.settled(tx_hash, units)
    return SettlementResult.failed(
        ChainRejected.kind, engine_result or "unknown engine result", tx_hash
    )


class NativeLedgerClient:
    chain = ChainKind.NATIVE.value

    def __init__(
        self,
        rpc_url: str,
        wallet: Wallet,
        client_factory: Callable[[str], WebsocketClient] = WebsocketClient,
    ):
        self.rpc_url = rpc_url
        self.wallet = wallet
        self._client_factory = client_factory

    @property
    def account_address(self) -> str:
        return self.wallet.classic_address

    @contextmanager
    def _session(self) -> Iterator[WebsocketClient]:
        try:
            client = self._client_factory(self.rpc_url)
            client.open()
        except Exception as e:
            logger.warning("XRPL connect failed (%s): %s", self.rpc_url, e)
            raise BackendUnavailable(f"XRPL connection failed: {e}")
        try:
            yield client
        finally:
            client.close()

    def _reserve(self, client: WebsocketClient, owner_count: int) -> int:
        response = client.request(ServerState())
        ledger = response.result["state"]["validated_ledger"]
        return int(ledger["reserve_base"]) + owner_count * int(ledger["reserve_inc"])

    def check_balance(self) -> int:
        """Balance above the account reserve, in drops. Unfunded account -> 0."""
        with self._session() as client:
            try:
                root = get_account_root(self.account_address, client)
                balance = int(root["Balance"])
                reserve = self._reserve(client, int(root.get("OwnerCount", 0)))
            except XRPLRequestFailureException as e:
                if getattr(e, "error", None) == "actNotFound" or "actNotFound" in str(e):
                    logger.warning("Custodial XRPL account %s not found", self.account_address)
                    return 0
                raise BackendUnavailable(f"XRPL balance lookup failed: {e}")
            except Exception as e:
                raise BackendUnavailable(f"XRPL balance lookup failed: {e}")
            return max(0, balance - reserve)

    def _build_payment(self, to: str, units: int, memo: Optional[str]) -> Payment:
        return Payment(
            account=self.account_address,
            destination=to,
            amount=str(units),
            memos=[encode_memo(memo)] if memo else None,
        )

    def submit_payment(
        self, to: str, units: int, memo: Optional[str] = None
    ) -> SettlementResult:
        try:
            with self._session() as client:
                return self._submit(client, to, units, memo)
        except BackendUnavailable as e:
            return SettlementResult.failed(e.kind, e.message)

    def _submit(
        self, client: WebsocketClient, to: str, units: int, memo: Optional[str]
    ) -> SettlementResult:
        try:
            payment = self._build_payment(to, units, memo)
        except XRPLModelException as e:
            logger.warning("XRPL payment rejected by model validation: %s", e)
            return SettlementResult.rejected(ValidationError.kind, str(e))

        try:
            signed = autofill_and_sign(payment, client, self.wallet)
        except Exception as e:
            logger.warning("XRPL autofill/sign failed: %s", e)
            return SettlementResult.failed(BackendUnavailable.kind, str(e))

        tx_hash = signed.get_hash()
        logger.info("Submitting XRPL payment: to=%s drops=%d tx=%s", to, units, tx_hash)

        try:
            response = submit_and_wait(signed, client)
        except XRPLReliableSubmissionException as e:
            message = str(e)
            # validated ledger passed LastLedgerSequence without the tx
            if "LastLedgerSequence" in message:
                return SettlementResult.failed(SettlementTimeout.kind, message, tx_hash)
            logger.warning("XRPL submission rejected: tx=%s %s", tx_hash, message)
            match = _RESULT_CODE_RE.search(message)
            code = match.group(1) if match else message
            return SettlementResult.failed(ChainRejected.kind, code, tx_hash)
        except Exception as e:
            logger.exception("XRPL submit failed: tx=%s", tx_hash)
            return SettlementResult.failed(SettlementTimeout.kind, str(e), tx_hash)

        result = response.result or {}
        engine_result = (result.get("meta") or {}).get("TransactionResult") \
            or result.get("engine_result")
        tx_hash = result.get("hash") or (result.get("tx_json") or {}).get("hash") or tx_hash

        outcome = classify_engine_result(engine_result, tx_hash, units)
        if outcome.ok:
            logger.info("XRPL payment validated: tx=%s", tx_hash)
        else:
            logger.warning("XRPL payment failed: tx=%s result=%s", tx_hash, engine_result)
        return outcome
