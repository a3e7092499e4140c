"""
Payout lifecycle.
"""

from settlement.services.payout.dispatch import (
    DramatiqTransferDispatcher,
    InProcessTransferDispatcher,
    TransferDispatcher,
)
from settlement.services.payout.engine import SettlementEngine
from settlement.services.payout.results import (
    PayoutStats,
    PayoutSummary,
    TransitionOutcome,
    TransitionResult,
)
from settlement.services.payout.state_machine import (
    ALLOWED_TRANSITIONS,
    assert_transition,
    can_transition,
    is_terminal,
)


__all__ = [
    "ALLOWED_TRANSITIONS",
    "DramatiqTransferDispatcher",
    "InProcessTransferDispatcher",
    "PayoutStats",
    "PayoutSummary",
    "SettlementEngine",
    "TransferDispatcher",
    "TransitionOutcome",
    "TransitionResult",
    "assert_transition",
    "can_transition",
    "is_terminal",
]
