"""
Logging notifier.

Default notifier: writes payout notices to the service log.
"""

from typing import Any

from loguru import logger

from settlement.models.partner import Partner
from settlement.services.fees import FeeBreakdown


class LoggingPayoutNotifier:
    """Notifier that only logs."""

    def __init__(self) -> None:
        self.logger = logger.bind(service="LoggingPayoutNotifier")

    async def send_payout_notice(
        self,
        partner: Partner,
        breakdown: FeeBreakdown,
        status: str,
        extra: dict[str, Any],
    ) -> None:
        self.logger.info(
            f"Payout notice '{status}' for partner {partner.id}",
            extra={
                "email": partner.email,
                "net_amount": breakdown.net_amount,
                **extra,
            },
        )
