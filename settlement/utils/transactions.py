"""
Transactional retry wrapper.

Runs a unit of work inside a single database transaction with automatic
commit/rollback and retries transient contention (deadlocks, lock
conflicts, serialization failures) with exponential backoff.

Usage:
    runner = TransactionRunner(session_maker)

    async def create(session: AsyncSession) -> Payout:
        return await PayoutRepository(session).create(...)

    payout = await runner.run(create)
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.config.constants import (
    TRANSACTION_MAX_RETRIES,
    TRANSACTION_MAX_WAIT_SECONDS,
    TRANSACTION_RETRY_BASE_DELAY,
    TRANSACTION_TIMEOUT_SECONDS,
)
from settlement.utils.exceptions import TransactionError


T = TypeVar("T")

UnitOfWork = Callable[[AsyncSession], Awaitable[T]]

# deadlock_detected, serialization_failure, lock_not_available
RETRYABLE_SQLSTATES = frozenset({"40P01", "40001", "55P03"})

RETRYABLE_MESSAGES = (
    "deadlock",
    "could not obtain lock",
    "lock_not_available",
    "could not serialize access",
    "serialization failure",
)


def _sqlstate(exc: BaseException) -> str | None:
    """Extract SQLSTATE from a DBAPI error (asyncpg or psycopg naming)."""
    orig = exc.orig if isinstance(exc, DBAPIError) else exc
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if isinstance(code, str):
            return code
    return None


def is_retryable_error(exc: BaseException) -> bool:
    """
    Check if an error signals transient resource contention.

    Pure classification: no I/O, no logging.

    Args:
        exc: Exception raised by a unit of work

    Returns:
        True if the unit of work may be retried
    """
    if _sqlstate(exc) in RETRYABLE_SQLSTATES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGES)


def backoff_delay(attempt: int, base_delay: float = TRANSACTION_RETRY_BASE_DELAY) -> float:
    """
    Delay before the next attempt.

    Formula: delay = 2^attempt * base (attempt counted from 1)
    Example: 200ms, 400ms, 800ms
    """
    return (2 ** attempt) * base_delay


class TransactionRunner:
    """
    Executes units of work in bounded, retry-guarded transactions.

    Domain exceptions raised by the unit of work propagate unchanged.
    Database errors surface as TransactionError.
    """

    def __init__(
        self,
        session_maker: Callable[[], Any],
        max_wait: float = TRANSACTION_MAX_WAIT_SECONDS,
        timeout: float = TRANSACTION_TIMEOUT_SECONDS,
        base_delay: float = TRANSACTION_RETRY_BASE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize transaction runner.

        Args:
            session_maker: Factory returning an async session context manager
            max_wait: Seconds allowed to acquire a connection
            timeout: Seconds allowed for the unit of work
            base_delay: Backoff base in seconds
            sleep: Awaitable sleep (injectable for tests)
        """
        self.session_maker = session_maker
        self.max_wait = max_wait
        self.timeout = timeout
        self.base_delay = base_delay
        self._sleep = sleep

    async def run(
        self,
        unit_of_work: UnitOfWork[T],
        max_retries: int = TRANSACTION_MAX_RETRIES,
    ) -> T:
        """
        Run unit of work, retrying on contention.

        Args:
            unit_of_work: Async callable receiving the transaction session
            max_retries: Maximum number of attempts

        Returns:
            Result of the unit of work

        Raises:
            TransactionError: Retries exhausted or non-retryable DB error
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._run_once(unit_of_work)
            except (SQLAlchemyError, asyncio.TimeoutError) as e:
                retryable = is_retryable_error(e)

                if not retryable:
                    logger.error(
                        f"Transaction failed with non-retryable error: {type(e).__name__}",
                        extra={"attempt": attempt, "error": str(e)},
                    )
                    raise TransactionError(
                        f"Transaction failed: {e}", attempts=attempt
                    ) from e

                if attempt >= max_retries:
                    logger.error(
                        f"Transaction contention persisted after {attempt} attempts",
                        extra={"error": str(e)},
                    )
                    raise TransactionError(
                        f"Transaction aborted after {attempt} attempts: {e}",
                        attempts=attempt,
                        retryable=True,
                    ) from e

                delay = backoff_delay(attempt, self.base_delay)
                logger.warning(
                    f"Transaction contention on attempt {attempt}/{max_retries}, "
                    f"retrying in {delay:.2f}s"
                )
                await self._sleep(delay)

    async def _run_once(self, unit_of_work: UnitOfWork[T]) -> T:
        """Single attempt: acquire, execute, commit or roll back."""
        async with self.session_maker() as session:
            try:
                # Acquiring the connection begins the transaction
                await asyncio.wait_for(session.connection(), timeout=self.max_wait)
                result = await asyncio.wait_for(
                    unit_of_work(session), timeout=self.timeout
                )
                await session.commit()
                return result
            except Exception as e:
                try:
                    await session.rollback()
                except SQLAlchemyError as rollback_error:
                    logger.error(
                        f"Failed to rollback after {type(e).__name__}",
                        extra={"error": str(rollback_error)},
                    )
                raise


async def with_transaction(
    session_maker: Callable[[], Any],
    unit_of_work: UnitOfWork[T],
    max_retries: int = TRANSACTION_MAX_RETRIES,
) -> T:
    """
    Execute a unit of work with automatic retry on contention.

    Args:
        session_maker: Factory returning an async session context manager
        unit_of_work: Async callable receiving the transaction session
        max_retries: Maximum number of attempts

    Returns:
        Result of the unit of work
    """
    return await TransactionRunner(session_maker).run(
        unit_of_work, max_retries=max_retries
    )
