"""
Payout model.

One settlement attempt moving earned commission to a partner. Records are
append-only: never deleted, only superseded in status.
"""

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement.models.base import Base
from settlement.models.enums import PaymentMethod, PayoutStatus
from settlement.models.types import CentsType, IdentifierType, TimestampType


if TYPE_CHECKING:
    from settlement.models.partner import Partner


class Payout(Base):
    """Payout model - partner settlements in cents."""

    __tablename__ = "payouts"
    __table_args__ = (
        CheckConstraint(
            "gross_amount > 0", name="check_payout_gross_positive"
        ),
        CheckConstraint(
            "platform_fee >= 0 AND gateway_fee >= 0",
            name="check_payout_fees_non_negative",
        ),
        CheckConstraint(
            "net_amount >= 0", name="check_payout_net_non_negative"
        ),
        CheckConstraint(
            "net_amount = gross_amount - platform_fee - gateway_fee",
            name="check_payout_net_equals_gross_minus_fees",
        ),
        CheckConstraint(
            "external_transaction_id IS NULL "
            "OR status IN ('PROCESSING', 'COMPLETED')",
            name="check_payout_external_id_status",
        ),
        Index("idx_payout_partner_status", "partner_id", "status"),
        Index("idx_payout_partner_requested", "partner_id", "requested_at"),
    )

    # Primary key
    id: Mapped[str] = mapped_column(
        IdentifierType, primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Partner reference
    partner_id: Mapped[str] = mapped_column(
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PayoutStatus.PENDING.value,
        index=True,
    )  # PENDING, PROCESSING, COMPLETED, FAILED, CANCELLED

    # Amounts (cents)
    gross_amount: Mapped[int] = mapped_column(CentsType, nullable=False)
    platform_fee: Mapped[int] = mapped_column(CentsType, nullable=False)
    gateway_fee: Mapped[int] = mapped_column(CentsType, nullable=False)
    net_amount: Mapped[int] = mapped_column(CentsType, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="usd"
    )

    payment_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentMethod.GATEWAY.value
    )

    # Gateway confirmation
    external_transaction_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )

    # Gateway audit trail, never cleared once funds moved
    gateway_transfer_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )
    gateway_payout_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )
    # Set under row lock before the gateway is called
    transfer_started_at: Mapped[datetime | None] = mapped_column(
        TimestampType, nullable=True
    )
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    requested_at: Mapped[datetime] = mapped_column(
        TimestampType,
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        TimestampType, nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TimestampType, nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        TimestampType, nullable=True
    )

    partner: Mapped["Partner"] = relationship(
        "Partner", back_populates="payouts", lazy="raise"
    )

    @property
    def is_terminal(self) -> bool:
        """Check if payout reached a final status."""
        return self.status in (
            PayoutStatus.COMPLETED.value,
            PayoutStatus.FAILED.value,
            PayoutStatus.CANCELLED.value,
        )

    def __repr__(self) -> str:
        return (
            f"<Payout(id={self.id}, partner_id={self.partner_id}, "
            f"net={self.net_amount}, status={self.status})>"
        )
