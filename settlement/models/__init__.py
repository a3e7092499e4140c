"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from settlement.models.base import Base
from settlement.models.enums import (
    NoticeType,
    PartnerStatus,
    PaymentMethod,
    PayoutStatus,
)
from settlement.models.partner import Partner
from settlement.models.payout import Payout


__all__ = [
    "Base",
    "NoticeType",
    "Partner",
    "PartnerStatus",
    "PaymentMethod",
    "Payout",
    "PayoutStatus",
]
