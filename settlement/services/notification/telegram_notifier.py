"""
Telegram notifier.

Sends payout notices to the partner's Telegram chat and copies them to
admin chats.
"""

import asyncio
from typing import Any

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from loguru import logger

from settlement.config.constants import NOTIFICATION_TIMEOUT_SECONDS
from settlement.models.partner import Partner
from settlement.services.fees import FeeBreakdown
from settlement.services.notification.formatter import format_payout_notice


class TelegramPayoutNotifier:
    """Notifier delivering through an aiogram bot."""

    def __init__(
        self,
        bot: Bot,
        admin_ids: list[int] | None = None,
        timeout: float = NOTIFICATION_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize Telegram notifier.

        Args:
            bot: Bot instance
            admin_ids: Admin chat IDs receiving a copy of every notice
            timeout: Per-message timeout in seconds
        """
        self.bot = bot
        self.admin_ids = admin_ids or []
        self.timeout = timeout
        self.logger = logger.bind(service="TelegramPayoutNotifier")

    async def send_payout_notice(
        self,
        partner: Partner,
        breakdown: FeeBreakdown,
        status: str,
        extra: dict[str, Any],
    ) -> None:
        message = format_payout_notice(partner, breakdown, status, extra)

        if partner.telegram_id:
            await self._send(partner.telegram_id, message)
        else:
            self.logger.debug(
                f"Partner {partner.id} has no Telegram chat, skipping notice"
            )

        admin_message = f"👤 Partner: {partner.name} ({partner.email})\n\n{message}"
        for admin_id in self.admin_ids:
            await self._send(admin_id, admin_message)

    async def _send(self, chat_id: int, text: str) -> bool:
        try:
            await asyncio.wait_for(
                self.bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    parse_mode="Markdown",
                    disable_web_page_preview=True,
                ),
                timeout=self.timeout,
            )
            return True
        except TimeoutError:
            self.logger.warning(f"Telegram timeout sending payout notice to {chat_id}")
            return False
        except TelegramAPIError as e:
            self.logger.warning(f"Failed to send payout notice to {chat_id}: {e}")
            return False

    async def close(self) -> None:
        """Close bot HTTP session."""
        await self.bot.session.close()
