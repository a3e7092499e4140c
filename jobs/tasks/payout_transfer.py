"""
Payout transfer task.

Executes the gateway transfer for a PROCESSING payout outside the request
path.
"""

import dramatiq
from loguru import logger

from jobs.async_runner import run_async
from jobs.tasks.engine import task_engine_scope
from settlement.utils.exceptions import NotFoundError, PersistenceError


@dramatiq.actor(max_retries=3, time_limit=120_000)  # 2 min timeout
def execute_payout_transfer(payout_id: str) -> dict:
    """
    Execute gateway transfer for a payout.

    Only a failure to claim the payout is retried by the broker, since the
    gateway has not been called yet. Once claimed, a redelivered message is
    a no-op and never transfers again.

    Args:
        payout_id: Payout ID

    Returns:
        Dict with payout_id and transfer_id (None if nothing transferred)
    """
    logger.info(f"Executing gateway transfer for payout {payout_id}")

    try:
        transfer_id = run_async(_execute_payout_transfer_async(payout_id))
    except NotFoundError:
        logger.error(f"Payout {payout_id} not found, dropping transfer task")
        return {"payout_id": payout_id, "transfer_id": None}
    except PersistenceError as e:
        logger.warning(f"Transfer for payout {payout_id} will be retried: {e.message}")
        raise

    return {"payout_id": payout_id, "transfer_id": transfer_id}


async def _execute_payout_transfer_async(payout_id: str) -> str | None:
    async with task_engine_scope() as engine:
        receipt = await engine.execute_transfer(payout_id)
        return receipt.transfer_id if receipt else None
