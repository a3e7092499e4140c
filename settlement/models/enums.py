"""
Enumerations for settlement models.
"""

import enum


class PayoutStatus(str, enum.Enum):
    """Payout lifecycle status."""

    PENDING = "PENDING"  # Created, waiting for processing
    PROCESSING = "PROCESSING"  # Sent to gateway, waiting for confirmation
    COMPLETED = "COMPLETED"  # Confirmed by gateway (terminal)
    FAILED = "FAILED"  # Rejected or failed (terminal)
    CANCELLED = "CANCELLED"  # Cancelled by operator (terminal)


class PartnerStatus(str, enum.Enum):
    """Partner account status."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class PaymentMethod(str, enum.Enum):
    """How a payout is settled."""

    GATEWAY = "gateway"  # Transfer through the payment gateway
    MANUAL = "manual"  # Settled by an operator outside the system


class NoticeType(str, enum.Enum):
    """Payout lifecycle notice kinds."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
