"""
Settlement services.

Rate limiting, fee calculation, payout lifecycle, gateway and notifications.
"""

from settlement.services.factory import build_engine, build_notifier
from settlement.services.fees import FeeBreakdown, FeeCalculator, compute_fees
from settlement.services.payout import (
    PayoutStats,
    PayoutSummary,
    SettlementEngine,
    TransitionOutcome,
    TransitionResult,
)


__all__ = [
    "FeeBreakdown",
    "FeeCalculator",
    "PayoutStats",
    "PayoutSummary",
    "SettlementEngine",
    "TransitionOutcome",
    "TransitionResult",
    "build_engine",
    "build_notifier",
    "compute_fees",
]
