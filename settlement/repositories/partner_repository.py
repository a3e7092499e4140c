"""
Partner repository.

Data access layer for Partner model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.models.partner import Partner
from settlement.repositories.base import BaseRepository


class PartnerRepository(BaseRepository[Partner]):
    """Partner repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize partner repository."""
        super().__init__(Partner, session)

    async def find_by_id(self, partner_id: str) -> Partner | None:
        """
        Get partner by ID.

        Args:
            partner_id: Partner ID

        Returns:
            Partner or None
        """
        return await self.get_by_id(partner_id)
