# errors.py
"""
Error taxonomy for claims and the pointer store.

Each error carries a ``kind`` (the name reported to callers in
``errorKind``) and the HTTP status the routes map it to.
"""
from __future__ import annotations

from typing import Optional


class RewardsError(Exception):
    kind = "Error"
    http_status = 500

    def __init__(self, message: str, tx_reference: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.tx_reference = tx_reference


# caller's fault, no retry implied
class ValidationError(RewardsError):
    kind = "ValidationError"
    http_status = 400


class InvalidRecipient(ValidationError):
    kind = "InvalidRecipient"


class UnsupportedChain(ValidationError):
    kind = "UnsupportedChain"


class AmountTooSmall(ValidationError):
    kind = "AmountTooSmall"


# operator's fault
class ConfigurationError(RewardsError):
    kind = "ConfigurationError"
    http_status = 500


class MissingCredential(ConfigurationError):
    kind = "MissingCredential"


# transient; the whole claim may be retried fresh
class BackendUnavailable(RewardsError):
    kind = "BackendUnavailable"
    http_status = 502


class InsufficientFunds(RewardsError):
    kind = "InsufficientFunds"
    http_status = 503


# funds may have moved; reconcile before retrying
class ChainRejected(RewardsError):
    kind = "ChainRejected"
    http_status = 500


class SettlementTimeout(RewardsError):
    kind = "Timeout"
    http_status = 504


class PinningServiceError(RewardsError):
    kind = "PinningServiceError"
    http_status = 502

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PublishFailed(PinningServiceError):
    kind = "PublishFailed"


_ALL = (
    ValidationError, InvalidRecipient, UnsupportedChain, AmountTooSmall,
    ConfigurationError, MissingCredential, BackendUnavailable, InsufficientFunds,
    ChainRejected, SettlementTimeout, PinningServiceError, PublishFailed,
)
_STATUS_BY_KIND = {cls.kind: cls.http_status for cls in _ALL}


def status_for_kind(kind: Optional[str]) -> int:
    return _STATUS_BY_KIND.get(kind, 500)
