# chain/base.py
"""
Capability shared by both settlement backends.

The claim service only ever talks to this protocol; backend quirks
(fees, sequence numbers, finality) stay inside each implementation.
"""
from __future__ import annotations

from typing import Optional, Protocol

from models import SettlementResult


class LedgerClient(Protocol):
    chain: str

    @property
    def account_address(self) -> str: ...

    def check_balance(self) -> int:
        """Spendable balance of the custodial account, in minor units."""
        ...

    def submit_payment(
        self, to: str, units: int, memo: Optional[str] = None
    ) -> SettlementResult:
        """Submit one transfer and block until its outcome is known or times out."""
        ...
