"""
Payout status lifecycle.

    PENDING -> PROCESSING -> COMPLETED | FAILED
    PENDING -> FAILED
    PENDING | PROCESSING -> CANCELLED (operator action)

COMPLETED, FAILED and CANCELLED are terminal.
"""

from settlement.models.enums import PayoutStatus
from settlement.utils.exceptions import InvalidStateTransition


ALLOWED_TRANSITIONS: dict[PayoutStatus, frozenset[PayoutStatus]] = {
    PayoutStatus.PENDING: frozenset(
        {PayoutStatus.PROCESSING, PayoutStatus.FAILED, PayoutStatus.CANCELLED}
    ),
    PayoutStatus.PROCESSING: frozenset(
        {PayoutStatus.COMPLETED, PayoutStatus.FAILED, PayoutStatus.CANCELLED}
    ),
    PayoutStatus.COMPLETED: frozenset(),
    PayoutStatus.FAILED: frozenset(),
    PayoutStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def is_terminal(status: str | PayoutStatus) -> bool:
    return PayoutStatus(status) in TERMINAL_STATUSES


def can_transition(current: str | PayoutStatus, target: str | PayoutStatus) -> bool:
    return PayoutStatus(target) in ALLOWED_TRANSITIONS[PayoutStatus(current)]


def assert_transition(current: str | PayoutStatus, target: str | PayoutStatus) -> None:
    """
    Guard a status change.

    Raises:
        InvalidStateTransition: Transition not allowed
    """
    if not can_transition(current, target):
        raise InvalidStateTransition(
            PayoutStatus(current).value, PayoutStatus(target).value
        )
