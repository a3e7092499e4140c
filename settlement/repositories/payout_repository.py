"""
Payout repository.

Data access layer for Payout model.
"""

from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.models.enums import PayoutStatus
from settlement.models.payout import Payout
from settlement.repositories.base import BaseRepository


class PayoutRepository(BaseRepository[Payout]):
    """Payout repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payout repository."""
        super().__init__(Payout, session)

    async def find_by_id(
        self, payout_id: str, for_update: bool = False
    ) -> Payout | None:
        """
        Get payout by ID.

        Args:
            payout_id: Payout ID
            for_update: Lock the row for a status transition

        Returns:
            Payout or None
        """
        return await self.get_by_id(payout_id, for_update=for_update)

    async def find_by_partner_id(
        self,
        partner_id: str,
        status: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Payout]:
        """
        Get partner payouts, newest first.

        Args:
            partner_id: Partner ID
            status: Optional status filter
            limit: Max number of results
            offset: Number of results to skip

        Returns:
            List of payouts
        """
        stmt = (
            select(Payout)
            .where(Payout.partner_id == partner_id)
            .order_by(Payout.requested_at.desc(), Payout.id)
        )
        if status:
            stmt = stmt.where(Payout.status == status)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_gateway_payout_id(
        self, gateway_payout_id: str
    ) -> Payout | None:
        """Get payout by the gateway's bank payout ID."""
        stmt = select(Payout).where(Payout.gateway_payout_id == gateway_payout_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_stale_processing(
        self, processed_before: datetime, limit: int = 100
    ) -> list[Payout]:
        """
        Get payouts stuck in PROCESSING that never reached the gateway.

        Payouts with a transfer claimed or recorded are excluded: funds may
        have moved, so they need reconciliation rather than an automatic
        failure (see find_stale_transferred).

        Args:
            processed_before: Cut-off for processed_at
            limit: Max number of results

        Returns:
            List of stale payouts, oldest first
        """
        stmt = (
            select(Payout)
            .where(Payout.status == PayoutStatus.PROCESSING.value)
            .where(Payout.processed_at < processed_before)
            .where(Payout.transfer_started_at.is_(None))
            .where(Payout.gateway_transfer_id.is_(None))
            .order_by(Payout.processed_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_stale_transferred(
        self, processed_before: datetime, limit: int = 100
    ) -> list[Payout]:
        """
        Get payouts stuck in PROCESSING after a transfer was claimed.

        Args:
            processed_before: Cut-off for processed_at
            limit: Max number of results

        Returns:
            List of payouts awaiting reconciliation, oldest first
        """
        stmt = (
            select(Payout)
            .where(Payout.status == PayoutStatus.PROCESSING.value)
            .where(Payout.processed_at < processed_before)
            .where(
                or_(
                    Payout.transfer_started_at.is_not(None),
                    Payout.gateway_transfer_id.is_not(None),
                )
            )
            .order_by(Payout.processed_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
