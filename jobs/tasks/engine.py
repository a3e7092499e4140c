"""
Settlement engine for worker tasks.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from jobs.utils.database import task_session_maker
from settlement.config.settings import settings
from settlement.services.factory import build_engine
from settlement.services.notification.telegram_notifier import TelegramPayoutNotifier
from settlement.services.payout.dispatch import DramatiqTransferDispatcher
from settlement.services.payout.engine import SettlementEngine


@asynccontextmanager
async def task_engine_scope() -> AsyncIterator[SettlementEngine]:
    """
    Build an engine for one task run.

    Waits for notices spawned during the run and closes the bot session
    before the worker's event loop goes idle.
    """
    engine = build_engine(
        settings,
        session_maker=task_session_maker,
        transfer_dispatcher=DramatiqTransferDispatcher(),
    )
    try:
        yield engine
    finally:
        await engine.drain(timeout=settings.notification_timeout * 2)
        if isinstance(engine.notifier, TelegramPayoutNotifier):
            await engine.notifier.close()
