"""
Settlement engine results.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from settlement.models.payout import Payout


class TransitionOutcome(str, Enum):
    """Outcome of a lifecycle callback."""

    APPLIED = "APPLIED"
    ALREADY_TERMINAL = "ALREADY_TERMINAL"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class PayoutSummary:
    """Payout as returned to the calling layer."""

    id: str
    gross_amount: int
    platform_fee: int
    gateway_fee: int
    net_amount: int
    status: str
    payment_method: str
    currency: str
    requested_at: datetime
    estimated_arrival: datetime | None = None

    @classmethod
    def from_payout(
        cls, payout: Payout, estimated_arrival: datetime | None = None
    ) -> "PayoutSummary":
        return cls(
            id=payout.id,
            gross_amount=payout.gross_amount,
            platform_fee=payout.platform_fee,
            gateway_fee=payout.gateway_fee,
            net_amount=payout.net_amount,
            status=payout.status,
            payment_method=payout.payment_method,
            currency=payout.currency,
            requested_at=payout.requested_at,
            estimated_arrival=estimated_arrival,
        )


@dataclass(frozen=True)
class TransitionResult:
    """
    Result of complete/fail/cancel/approve.

    ALREADY_TERMINAL means the payout was final before the call: nothing was
    mutated and no notice was sent. SKIPPED means the payout was left
    unchanged because funds may already have moved.
    """

    outcome: TransitionOutcome
    payout_id: str
    status: str
    previous_status: str

    @property
    def applied(self) -> bool:
        return self.outcome is TransitionOutcome.APPLIED


@dataclass(frozen=True)
class PayoutStats:
    """Partner payout totals (net cents)."""

    total_paid: int = 0
    total_pending: int = 0
    total_processing: int = 0
    payout_count: int = 0
    last_payout_date: datetime | None = None
