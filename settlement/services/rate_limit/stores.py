"""
Quota stores.

Both stores implement the same fixed-window semantics with an atomic
compare-and-increment: the limit is checked BEFORE incrementing, so a
refused request never consumes quota.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from settlement.config.settings import Settings
from settlement.utils.redis_utils import get_redis_client


@dataclass(frozen=True)
class QuotaHit:
    """Outcome of one hit against a window."""

    count: int
    reset_at: float  # epoch seconds
    admitted: bool


class QuotaStore(Protocol):
    """Counter storage for fixed-window rate limiting."""

    async def hit(
        self, key: str, limit: int, window_seconds: int, now: float
    ) -> QuotaHit:
        """Register one request against the window keyed by `key`."""
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryQuotaStore:
    """
    Single-process quota store.

    Suitable for development and single-instance deployments. Windows are
    replaced on expiry, never mutated across windows. Expired windows are
    purged every `purge_every` hits so the map stays bounded by the number
    of callers active within one window.
    """

    def __init__(self, purge_every: int = 1000) -> None:
        if purge_every <= 0:
            raise ValueError("purge_every must be positive")
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._purge_every = purge_every
        self._hits_since_purge = 0

    async def hit(
        self, key: str, limit: int, window_seconds: int, now: float
    ) -> QuotaHit:
        async with self._lock:
            self._hits_since_purge += 1
            if self._hits_since_purge >= self._purge_every:
                self._hits_since_purge = 0
                self._purge_locked(now)

            window = self._windows.get(key)

            if window is None or now >= window.reset_at:
                window = _Window(count=1, reset_at=now + window_seconds)
                self._windows[key] = window
                return QuotaHit(count=1, reset_at=window.reset_at, admitted=True)

            if window.count >= limit:
                return QuotaHit(
                    count=window.count, reset_at=window.reset_at, admitted=False
                )

            window.count += 1
            return QuotaHit(
                count=window.count, reset_at=window.reset_at, admitted=True
            )

    async def purge_expired(self, now: float) -> int:
        """
        Drop expired windows.

        Args:
            now: Current epoch seconds

        Returns:
            Number of purged windows
        """
        async with self._lock:
            return self._purge_locked(now)

    def _purge_locked(self, now: float) -> int:
        expired = [
            key for key, window in self._windows.items()
            if now >= window.reset_at
        ]
        for key in expired:
            del self._windows[key]

        if expired:
            logger.debug(f"Purged {len(expired)} expired rate limit windows")
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


class RedisQuotaStore:
    """
    Shared quota store backed by Redis.

    One Lua script round-trip per hit. Key TTL equals the window, so stale
    windows expire on their own.
    """

    # Returns {count, ttl_ms, admitted} where admitted = 0|1
    LUA_SCRIPT = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window_ms = tonumber(ARGV[2])

    local count = tonumber(redis.call('GET', key) or '0')
    local ttl = redis.call('PTTL', key)

    -- New window (missing key or key without expiry)
    if count == 0 or ttl < 0 then
        redis.call('SET', key, 1, 'PX', window_ms)
        return {1, window_ms, 1}
    end

    -- Check limit BEFORE increment
    if count >= limit then
        return {count, ttl, 0}
    end

    count = redis.call('INCR', key)
    return {count, ttl, 1}
    """

    def __init__(self, redis_client: Any) -> None:
        """
        Initialize Redis quota store.

        Args:
            redis_client: redis.asyncio client
        """
        self.redis_client = redis_client

    async def hit(
        self, key: str, limit: int, window_seconds: int, now: float
    ) -> QuotaHit:
        result = await self.redis_client.eval(
            self.LUA_SCRIPT,
            1,
            key,
            limit,
            window_seconds * 1000,
        )
        count, ttl_ms, admitted = (int(value) for value in result)
        return QuotaHit(
            count=count,
            reset_at=now + ttl_ms / 1000,
            admitted=bool(admitted),
        )


def build_quota_store(
    settings: Settings, redis_client: Any | None = None
) -> QuotaStore:
    """
    Choose quota store from settings.

    Args:
        settings: Application settings
        redis_client: Optional pre-built Redis client

    Returns:
        Configured quota store
    """
    if settings.rate_limit_backend == "redis":
        client = redis_client or get_redis_client(settings)
        logger.info("Rate limiting uses shared Redis quota store")
        return RedisQuotaStore(client)

    logger.info("Rate limiting uses in-memory quota store")
    return InMemoryQuotaStore()
