"""
Tests for the points -> minor units policy.

Pure arithmetic only: no ledger, no HTTP.
"""
import pytest

from errors import AmountTooSmall, ValidationError
from models import PayoutConfig
from payout_policy import resolve_amount

NATIVE = PayoutConfig(units_per_point=10_000, max_units_per_claim=1_000_000, min_units_per_claim=1_000)


class TestPointsPath:
    def test_one_point_passes_floor_under_cap(self):
        assert resolve_amount(1, None, NATIVE) == 10_000

    def test_large_balance_is_clamped_to_cap(self):
        # raw 10_000_000
        assert resolve_amount(1000, None, NATIVE) == 1_000_000

    @pytest.mark.parametrize("points", [1, 2, 7, 50, 99, 100, 101, 5000])
    def test_matches_min_of_product_and_cap(self, points):
        expected = min(points * NATIVE.units_per_point, NATIVE.max_units_per_claim)
        assert resolve_amount(points, None, NATIVE) == expected

    def test_missing_points_defaults_to_one(self):
        assert resolve_amount(None, None, NATIVE) == 10_000

    def test_fractional_points_are_floored(self):
        assert resolve_amount(2.9, None, NATIVE) == 20_000

    def test_zero_points_is_rejected(self):
        with pytest.raises(AmountTooSmall):
            resolve_amount(0, None, NATIVE)

    def test_negative_points_count_as_zero(self):
        with pytest.raises(AmountTooSmall):
            resolve_amount(-5, None, NATIVE)

    def test_below_floor_is_rejected(self):
        tiny = PayoutConfig(units_per_point=10, max_units_per_claim=1_000_000, min_units_per_claim=1_000)
        with pytest.raises(AmountTooSmall):
            resolve_amount(5, None, tiny)

    def test_exactly_at_floor_passes(self):
        cfg = PayoutConfig(units_per_point=1_000, max_units_per_claim=1_000_000, min_units_per_claim=1_000)
        assert resolve_amount(1, None, cfg) == 1_000

    @pytest.mark.parametrize("points", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_points_are_invalid(self, points):
        with pytest.raises(ValidationError):
            resolve_amount(points, None, NATIVE)


class TestExplicitAmount:
    def test_explicit_overrides_points(self):
        assert resolve_amount(1000, 5_000, NATIVE) == 5_000

    def test_explicit_is_still_capped(self):
        assert resolve_amount(None, 50_000_000, NATIVE) == 1_000_000

    def test_zero_explicit_falls_back_to_points(self):
        assert resolve_amount(3, 0, NATIVE) == 30_000

    def test_explicit_below_floor_is_rejected(self):
        with pytest.raises(AmountTooSmall):
            resolve_amount(10, 999, NATIVE)

    def test_wei_scale_amounts(self):
        evm = PayoutConfig(units_per_point=10**16, max_units_per_claim=10**18, min_units_per_claim=10**14)
        assert resolve_amount(3, None, evm) == 3 * 10**16
        assert resolve_amount(1000, None, evm) == 10**18
