# models.py
"""
Plain data types shared by the payout policy, the ledger clients,
the claim service and the pointer store.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ChainKind(str, Enum):
    NATIVE = "native"
    EVM = "evm"


class ClaimOutcome(str, Enum):
    SETTLED = "settled"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class PayoutConfig:
    """Per-chain payout bounds, all in minor units (drops / wei)."""
    units_per_point: int
    max_units_per_claim: int
    min_units_per_claim: int


@dataclass
class ClaimRequest:
    recipient_address: str
    chain: Any
    points: Optional[float] = None
    explicit_amount: Optional[int] = None
    memo: Optional[str] = None


@dataclass
class SettlementResult:
    ok: bool
    tx_reference: Optional[str] = None
    settled_units: int = 0
    failure_reason: Optional[str] = None
    outcome: ClaimOutcome = ClaimOutcome.FAILED
    error_kind: Optional[str] = None

    @classmethod
    def settled(cls, tx_reference: str, units: int) -> "SettlementResult":
        return cls(
            ok=True,
            tx_reference=tx_reference,
            settled_units=units,
            outcome=ClaimOutcome.SETTLED,
        )

    @classmethod
    def rejected(cls, kind: str, reason: str) -> "SettlementResult":
        return cls(
            ok=False,
            failure_reason=reason,
            outcome=ClaimOutcome.REJECTED,
            error_kind=kind,
        )

    @classmethod
    def failed(
        cls, kind: str, reason: str, tx_reference: Optional[str] = None
    ) -> "SettlementResult":
        return cls(
            ok=False,
            tx_reference=tx_reference,
            failure_reason=reason,
            outcome=ClaimOutcome.FAILED,
            error_kind=kind,
        )

    def to_response(self) -> Dict[str, Any]:
        if self.ok:
            return {
                "ok": True,
                "txReference": self.tx_reference,
                # decimal string: wei amounts overflow JS numbers
                "settledUnits": str(self.settled_units),
            }
        body: Dict[str, Any] = {
            "ok": False,
            "failureReason": self.failure_reason,
            "errorKind": self.error_kind,
        }
        if self.tx_reference:
            body["txReference"] = self.tx_reference
        return body


@dataclass
class PointerRecord:
    name: str
    latest_content_id: str
    updated_at: Optional[str] = None
    pointer_blob_id: Optional[str] = None
