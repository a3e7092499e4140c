"""
Payout scheduler.

Periodically enqueues the stale payout monitor and serves health checks.

Run:
    python -m jobs.scheduler
"""

import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from jobs.health import start_health_server, stop_health_server
from settlement.config.logging import setup_logging
from settlement.config.settings import settings


STALE_PAYOUT_CHECK_MINUTES = 15


def enqueue_stale_payout_monitor() -> None:
    """Send monitor_stale_payouts to the broker."""
    from jobs.tasks.stale_payout_monitor import monitor_stale_payouts

    monitor_stale_payouts.send()


def create_scheduler() -> AsyncIOScheduler:
    """Create scheduler with settlement jobs."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        enqueue_stale_payout_monitor,
        "interval",
        minutes=STALE_PAYOUT_CHECK_MINUTES,
        id="monitor_stale_payouts",
        name="Fail payouts stuck in PROCESSING",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def main() -> None:
    setup_logging("logs/scheduler.log")

    scheduler = create_scheduler()
    scheduler.start()
    runner = await start_health_server(scheduler)
    logger.info(
        f"Payout scheduler started (stale after {settings.stale_processing_hours}h)"
    )

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        await stop_health_server(runner)


if __name__ == "__main__":
    asyncio.run(main())
