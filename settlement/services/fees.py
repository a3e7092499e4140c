"""
Fee calculator.

Pure integer computation of payout fees. All amounts are cents.

Formula:
    platform_fee = round_half_up(gross * rate)
    net = gross - platform_fee - gateway_fee

Example (gross=5000, rate=0.01, gateway_fee=25):
    platform_fee = 50, net = 4925
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from settlement.config.constants import GATEWAY_FEE_CENTS, PLATFORM_FEE_RATE
from settlement.utils.exceptions import InvalidAmount


@dataclass(frozen=True)
class FeeBreakdown:
    """Fee breakdown for one payout (cents)."""

    gross_amount: int
    platform_fee: int
    gateway_fee: int
    net_amount: int

    @property
    def total_fees(self) -> int:
        return self.platform_fee + self.gateway_fee


def _require_positive_cents(value: object) -> int:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"Amount must be an integer number of cents, got {value!r}")
    if value <= 0:
        raise InvalidAmount(f"Amount must be positive, got {value}")
    return value


def compute_fees(
    gross_amount_cents: int,
    platform_fee_rate: Decimal = PLATFORM_FEE_RATE,
    gateway_fee_cents: int = GATEWAY_FEE_CENTS,
) -> FeeBreakdown:
    """
    Compute fee breakdown for a gross amount.

    Net amount is not clamped: callers reject negative nets.

    Args:
        gross_amount_cents: Gross amount in cents
        platform_fee_rate: Platform fee fraction
        gateway_fee_cents: Flat gateway fee in cents

    Returns:
        FeeBreakdown

    Raises:
        InvalidAmount: Gross amount is not a positive integer
    """
    gross = _require_positive_cents(gross_amount_cents)

    platform_fee = int(
        (Decimal(gross) * Decimal(platform_fee_rate)).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
    )
    net = gross - platform_fee - gateway_fee_cents

    return FeeBreakdown(
        gross_amount=gross,
        platform_fee=platform_fee,
        gateway_fee=gateway_fee_cents,
        net_amount=net,
    )


class FeeCalculator:
    """Fee calculator bound to configured rates."""

    def __init__(
        self,
        platform_fee_rate: Decimal = PLATFORM_FEE_RATE,
        gateway_fee_cents: int = GATEWAY_FEE_CENTS,
    ) -> None:
        self.platform_fee_rate = Decimal(platform_fee_rate)
        self.gateway_fee_cents = gateway_fee_cents

    def calculate(self, gross_amount_cents: int) -> FeeBreakdown:
        """Compute fee breakdown with the bound rates."""
        return compute_fees(
            gross_amount_cents,
            platform_fee_rate=self.platform_fee_rate,
            gateway_fee_cents=self.gateway_fee_cents,
        )
