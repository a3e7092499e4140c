"""
Repositories.

Async SQLAlchemy data access for partners and payouts.
"""

from settlement.repositories.base import BaseRepository
from settlement.repositories.partner_repository import PartnerRepository
from settlement.repositories.payout_repository import PayoutRepository


__all__ = ["BaseRepository", "PartnerRepository", "PayoutRepository"]
