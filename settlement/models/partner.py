"""
Partner model.

Referral partners that earn commission and request payouts.
"""

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement.models.base import Base
from settlement.models.enums import PartnerStatus
from settlement.models.types import IdentifierType, TimestampType


if TYPE_CHECKING:
    from settlement.models.payout import Payout


class Partner(Base):
    """Partner model - payout recipients."""

    __tablename__ = "partners"

    # Primary key
    id: Mapped[str] = mapped_column(
        IdentifierType, primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Identity
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    referral_code: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PartnerStatus.PENDING.value
    )

    # Gateway destination (connected account id)
    payout_account_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Notification channel
    telegram_id: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TimestampType,
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    payouts: Mapped[list["Payout"]] = relationship(
        "Payout", back_populates="partner", lazy="raise"
    )

    def __repr__(self) -> str:
        return f"<Partner(id={self.id}, email={self.email!r}, status={self.status})>"
