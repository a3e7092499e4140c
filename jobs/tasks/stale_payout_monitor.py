"""
Stale payout monitor.

Fails payouts stuck in PROCESSING longer than the configured number of
hours whose transfer was never started. Payouts with a gateway transfer
are only reported for reconciliation.
"""

import dramatiq
from loguru import logger

from jobs.async_runner import run_async
from jobs.tasks.engine import task_engine_scope
from settlement.config.settings import settings


@dramatiq.actor(max_retries=1, time_limit=300_000)  # 5 min timeout
def monitor_stale_payouts() -> dict:
    """
    Fail stale PROCESSING payouts.

    Returns:
        Dict with failed count
    """
    logger.info("Starting stale payout monitoring...")

    try:
        failed = run_async(_monitor_stale_payouts_async())
    except Exception as e:
        logger.exception(f"Stale payout monitoring failed: {e}")
        return {"failed": 0, "error": str(e)}

    logger.info(f"Stale payout monitoring complete: {failed} failed")
    return {"failed": failed}


async def _monitor_stale_payouts_async() -> int:
    async with task_engine_scope() as engine:
        return await engine.fail_stale_payouts(settings.stale_processing_hours)
