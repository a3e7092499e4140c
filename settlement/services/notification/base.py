"""
Notifier contract.
"""

from typing import Any, Protocol

from settlement.models.partner import Partner
from settlement.services.fees import FeeBreakdown


class PayoutNotifier(Protocol):
    """
    Delivers payout lifecycle notices.

    Called fire-and-forget: failures are logged by the caller and never
    affect payout state.
    """

    async def send_payout_notice(
        self,
        partner: Partner,
        breakdown: FeeBreakdown,
        status: str,
        extra: dict[str, Any],
    ) -> None:
        ...
