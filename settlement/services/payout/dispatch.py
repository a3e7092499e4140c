"""
Gateway transfer dispatchers.

Hand a PROCESSING payout's gateway transfer off the request path: either
to an in-process background task or to a dramatiq worker.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from settlement.utils.background import BackgroundTasks


class TransferDispatcher(Protocol):
    async def dispatch(self, payout_id: str) -> None:
        ...


class InProcessTransferDispatcher:
    """Runs transfers as tracked asyncio tasks."""

    def __init__(
        self,
        execute: Callable[[str], Awaitable[Any]],
        background: BackgroundTasks,
    ) -> None:
        self.execute = execute
        self.background = background

    async def dispatch(self, payout_id: str) -> None:
        self.background.spawn(
            self.execute(payout_id), name=f"payout-transfer-{payout_id}"
        )


class DramatiqTransferDispatcher:
    """Enqueues transfers for the execute_payout_transfer actor."""

    def __init__(self, actor: Any | None = None) -> None:
        if actor is None:
            from jobs.tasks.payout_transfer import execute_payout_transfer

            actor = execute_payout_transfer
        self.actor = actor

    async def dispatch(self, payout_id: str) -> None:
        # Broker enqueue is blocking I/O
        await asyncio.to_thread(self.actor.send, payout_id)
