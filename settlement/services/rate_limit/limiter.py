"""
Rate limiter.

Fixed-window admission control per caller identifier and operation class.
Fails open: when the quota store is unavailable the request is admitted
and the failure logged.
"""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger
from redis.exceptions import RedisError

from settlement.config.constants import RATE_LIMIT_KEY_PREFIX
from settlement.config.settings import Settings, settings as default_settings
from settlement.services.rate_limit.config import RateLimitConfig
from settlement.services.rate_limit.stores import QuotaStore


@dataclass(frozen=True)
class RateLimitResult:
    """Admission decision."""

    admitted: bool
    limit: int
    remaining: int
    reset_at: datetime
    retry_after_seconds: int | None = None


def _to_datetime(epoch_seconds: float) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, UTC)


class RateLimiter:
    """Checks caller budgets against a quota store."""

    def __init__(
        self,
        store: QuotaStore,
        settings: Settings = default_settings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize rate limiter.

        Args:
            store: Quota store (Redis or in-memory)
            settings: Application settings
            clock: Epoch seconds source (injectable for tests)
        """
        self.store = store
        self.enabled = settings.rate_limiting_enabled
        self._clock = clock
        self.logger = logger.bind(service="RateLimiter")

    @staticmethod
    def build_key(identifier: str, config: RateLimitConfig) -> str:
        return f"{RATE_LIMIT_KEY_PREFIX}:{config.operation_class}:{identifier}"

    async def check_limit(
        self, identifier: str, config: RateLimitConfig
    ) -> RateLimitResult:
        """
        Register one request and decide admission.

        Args:
            identifier: Caller identifier (IP, partner ID, ...)
            config: Operation class limit

        Returns:
            RateLimitResult
        """
        now = self._clock()

        if not self.enabled:
            return self._open_result(config, now)

        key = self.build_key(identifier, config)
        try:
            hit = await self.store.hit(
                key, config.requests, config.window_seconds, now
            )
        except (RedisError, ConnectionError, TimeoutError, OSError) as e:
            self.logger.error(
                "Quota store unavailable, admitting request",
                extra={"operation_class": config.operation_class, "error": str(e)},
            )
            # Fail open - allow on error
            return self._open_result(config, now)

        if not hit.admitted:
            retry_after = max(0, math.ceil(hit.reset_at - now))
            self.logger.info(
                f"Rate limit exceeded for {config.operation_class}",
                extra={"identifier": identifier, "retry_after": retry_after},
            )
            return RateLimitResult(
                admitted=False,
                limit=config.requests,
                remaining=0,
                reset_at=_to_datetime(hit.reset_at),
                retry_after_seconds=retry_after,
            )

        return RateLimitResult(
            admitted=True,
            limit=config.requests,
            remaining=max(0, config.requests - hit.count),
            reset_at=_to_datetime(hit.reset_at),
        )

    @staticmethod
    def _open_result(config: RateLimitConfig, now: float) -> RateLimitResult:
        return RateLimitResult(
            admitted=True,
            limit=config.requests,
            remaining=config.requests,
            reset_at=_to_datetime(now + config.window_seconds),
        )
