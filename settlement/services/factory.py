"""
Settlement engine factory.

Wires the engine's collaborators from settings.
"""

from typing import Any

from aiogram import Bot
from loguru import logger

from settlement.config.database import create_engine, create_session_maker
from settlement.config.settings import Settings, settings as default_settings
from settlement.services.gateway import PaymentGateway, SimulatedPaymentGateway
from settlement.services.notification.base import PayoutNotifier
from settlement.services.notification.logging_notifier import LoggingPayoutNotifier
from settlement.services.notification.telegram_notifier import TelegramPayoutNotifier
from settlement.services.payout.dispatch import TransferDispatcher
from settlement.services.payout.engine import SettlementEngine
from settlement.services.rate_limit.limiter import RateLimiter
from settlement.services.rate_limit.stores import build_quota_store
from settlement.utils.transactions import TransactionRunner


def build_notifier(settings: Settings = default_settings) -> PayoutNotifier:
    """
    Choose notifier from settings.

    Telegram when a bot token is configured, log-only otherwise.
    """
    if settings.telegram_bot_token:
        bot = Bot(token=settings.telegram_bot_token)
        return TelegramPayoutNotifier(
            bot,
            admin_ids=settings.get_admin_ids(),
            timeout=settings.notification_timeout,
        )
    return LoggingPayoutNotifier()


def build_engine(
    settings: Settings = default_settings,
    session_maker: Any | None = None,
    redis_client: Any | None = None,
    gateway: PaymentGateway | None = None,
    notifier: PayoutNotifier | None = None,
    transfer_dispatcher: TransferDispatcher | None = None,
) -> SettlementEngine:
    """
    Build settlement engine.

    Args:
        settings: Application settings
        session_maker: Async session maker (built from settings if omitted)
        redis_client: Redis client for the shared quota store
        gateway: Payment gateway (simulated if omitted)
        notifier: Payout notifier (chosen from settings if omitted)
        transfer_dispatcher: Transfer hand-off (in-process if omitted)

    Returns:
        Configured SettlementEngine
    """
    if session_maker is None:
        session_maker = create_session_maker(create_engine(settings))

    runner = TransactionRunner(
        session_maker,
        max_wait=settings.transaction_max_wait,
        timeout=settings.transaction_timeout,
        base_delay=settings.transaction_retry_base_delay,
    )
    rate_limiter = RateLimiter(
        build_quota_store(settings, redis_client=redis_client),
        settings=settings,
    )

    if gateway is None:
        logger.warning("No payment gateway configured, using simulated gateway")
        gateway = SimulatedPaymentGateway(
            arrival_days=settings.payout_estimated_arrival_days
        )

    return SettlementEngine(
        runner=runner,
        rate_limiter=rate_limiter,
        gateway=gateway,
        notifier=notifier or build_notifier(settings),
        settings=settings,
        transfer_dispatcher=transfer_dispatcher,
    )
