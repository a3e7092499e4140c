"""
Payout notifications.
"""

from settlement.services.notification.base import PayoutNotifier
from settlement.services.notification.formatter import (
    format_cents,
    format_payout_notice,
)
from settlement.services.notification.logging_notifier import LoggingPayoutNotifier
from settlement.services.notification.telegram_notifier import TelegramPayoutNotifier


__all__ = [
    "LoggingPayoutNotifier",
    "PayoutNotifier",
    "TelegramPayoutNotifier",
    "format_cents",
    "format_payout_notice",
]
