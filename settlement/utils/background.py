"""
In-process background tasks.

Fire-and-forget hand-off for work that must not delay or abort the caller:
lifecycle notifications and gateway transfers. Tasks are tracked so they are
not garbage-collected mid-flight and can be drained on shutdown.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class BackgroundTasks:
    """Tracks asyncio tasks spawned outside the request path."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        """
        Schedule coroutine on the running loop.

        Args:
            coro: Coroutine to run
            name: Task name for logs

        Returns:
            Scheduled task
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Tasks are expected to handle their own errors
            logger.opt(exception=exc).error(
                f"Background task {task.get_name()} crashed: {exc}"
            )

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait for all tracked tasks, including ones spawned while waiting.

        Args:
            timeout: Optional overall timeout in seconds
        """
        async def _wait_all() -> None:
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

        await asyncio.wait_for(_wait_all(), timeout=timeout)
