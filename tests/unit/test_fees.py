"""
Tests for payout fee calculation.

Formula: net = gross - round_half_up(gross * rate) - gateway_fee

Covers:
- Default rates
- Half-up rounding of the platform fee
- Invalid amounts
- Configured calculator
"""

from decimal import Decimal

import pytest

from settlement.services.fees import FeeBreakdown, FeeCalculator, compute_fees
from settlement.utils.exceptions import ErrorCode, InvalidAmount


class TestComputeFees:
    """Test compute_fees with default rates (1% + 25 cents)."""

    def test_ten_thousand_cents(self):
        """Test 100.00 gross amount."""
        breakdown = compute_fees(10000)

        assert breakdown == FeeBreakdown(
            gross_amount=10000, platform_fee=100, gateway_fee=25, net_amount=9875
        )

    def test_minimum_payout(self):
        """Test 10.00 gross amount."""
        breakdown = compute_fees(1000)

        assert breakdown.platform_fee == 10
        assert breakdown.net_amount == 965

    def test_rounds_half_up(self):
        """Test 1% of 1050 = 10.5 rounds to 11."""
        breakdown = compute_fees(1050)

        assert breakdown.platform_fee == 11
        assert breakdown.net_amount == 1050 - 11 - 25

    def test_rounds_down_below_half(self):
        """Test 1% of 1049 = 10.49 rounds to 10."""
        assert compute_fees(1049).platform_fee == 10

    @pytest.mark.parametrize("gross", [1, 99, 1000, 1234, 99999, 10**9 + 7])
    def test_parts_sum_to_gross(self, gross):
        """Test fees and net always add up to the gross amount."""
        breakdown = compute_fees(gross)

        assert (
            breakdown.platform_fee + breakdown.gateway_fee + breakdown.net_amount
            == gross
        )

    def test_small_amount_has_negative_net(self):
        """Test net is not clamped when fees exceed the amount."""
        breakdown = compute_fees(10)

        assert breakdown.net_amount < 0

    def test_total_fees(self):
        """Test total_fees property."""
        assert compute_fees(10000).total_fees == 125


class TestInvalidAmounts:
    """Test rejection of invalid gross amounts."""

    @pytest.mark.parametrize("gross", [0, -1, -1000])
    def test_non_positive(self, gross):
        """Test zero and negative amounts."""
        with pytest.raises(InvalidAmount) as exc_info:
            compute_fees(gross)

        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT

    @pytest.mark.parametrize("gross", [10.5, "1000", Decimal("1000"), True, None])
    def test_non_integer(self, gross):
        """Test floats, strings, decimals and booleans are rejected."""
        with pytest.raises(InvalidAmount):
            compute_fees(gross)


class TestFeeCalculator:
    """Test FeeCalculator with configured rates."""

    def test_custom_rates(self):
        """Test 2.5% platform fee and 30 cents flat fee."""
        calculator = FeeCalculator(
            platform_fee_rate=Decimal("0.025"), gateway_fee_cents=30
        )

        breakdown = calculator.calculate(2000)

        assert breakdown.platform_fee == 50
        assert breakdown.gateway_fee == 30
        assert breakdown.net_amount == 1920

    def test_zero_fees(self):
        """Test calculator without fees."""
        calculator = FeeCalculator(platform_fee_rate=Decimal("0"), gateway_fee_cents=0)

        assert calculator.calculate(1234).net_amount == 1234
