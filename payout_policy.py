# payout_policy.py
"""
Point balance -> settlement amount.

Everything here is in minor units (drops on the native ledger, wei on
the EVM sidechain) and is pure: no I/O, no clock, no randomness.
"""
from __future__ import annotations

import math
from typing import Optional

from errors import AmountTooSmall, ValidationError
from models import PayoutConfig

DEFAULT_POINTS = 1


def units_from_points(points: Optional[float], config: PayoutConfig) -> int:
    if points is None:
        points = DEFAULT_POINTS
    if not math.isfinite(points):
        raise ValidationError(f"points must be a finite number, got {points!r}")
    return max(0, math.floor(points)) * config.units_per_point


def resolve_amount(
    points: Optional[float],
    explicit_amount: Optional[int],
    config: PayoutConfig,
) -> int:
    """
    Resolve the amount to pay for one claim.

    An explicit amount > 0 wins over points. Either way the result is
    capped at ``max_units_per_claim``; a result under
    ``min_units_per_claim`` raises AmountTooSmall.
    """
    if explicit_amount is not None and explicit_amount > 0:
        amount = int(explicit_amount)
    else:
        amount = units_from_points(points, config)

    amount = min(amount, config.max_units_per_claim)

    if amount < config.min_units_per_claim:
        raise AmountTooSmall(
            f"Amount too small: {amount} < minimum {config.min_units_per_claim}"
        )
    return amount
