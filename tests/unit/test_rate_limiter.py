"""
Tests for fixed-window rate limiting.

Covers:
- Window start, exhaustion and reset
- Independent operation classes and identifiers
- Fail-open on store errors
- Disabled limiter
- Concurrent callers against one window
- In-memory store purge
- Redis store script results
"""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from settlement.services.rate_limit.config import RateLimitConfig, RateLimitConfigs
from settlement.services.rate_limit.limiter import RateLimiter
from settlement.services.rate_limit.stores import (
    InMemoryQuotaStore,
    RedisQuotaStore,
    build_quota_store,
)


@pytest.fixture
def config():
    return RateLimitConfig(requests=3, window_seconds=60, operation_class="test")


class TestFixedWindow:
    """Test window semantics with the in-memory store."""

    @pytest.mark.asyncio
    async def test_first_request_starts_window(self, rate_limiter, fake_clock, config):
        result = await rate_limiter.check_limit("client", config)

        assert result.admitted is True
        assert result.limit == 3
        assert result.remaining == 2
        assert result.retry_after_seconds is None
        assert result.reset_at == datetime.fromtimestamp(fake_clock.now + 60, UTC)

    @pytest.mark.asyncio
    async def test_remaining_decreases(self, rate_limiter, config):
        remaining = [
            (await rate_limiter.check_limit("client", config)).remaining
            for _ in range(3)
        ]

        assert remaining == [2, 1, 0]

    @pytest.mark.asyncio
    async def test_refused_after_limit(self, rate_limiter, fake_clock, config):
        for _ in range(3):
            await rate_limiter.check_limit("client", config)

        fake_clock.advance(20.5)
        result = await rate_limiter.check_limit("client", config)

        assert result.admitted is False
        assert result.remaining == 0
        assert result.retry_after_seconds == 40  # ceil(39.5)

    @pytest.mark.asyncio
    async def test_refusal_does_not_extend_window(self, rate_limiter, fake_clock, config):
        for _ in range(5):
            await rate_limiter.check_limit("client", config)

        fake_clock.advance(60)
        result = await rate_limiter.check_limit("client", config)

        assert result.admitted is True
        assert result.remaining == 2

    @pytest.mark.asyncio
    async def test_window_resets(self, rate_limiter, fake_clock, config):
        for _ in range(3):
            await rate_limiter.check_limit("client", config)

        fake_clock.advance(61)
        result = await rate_limiter.check_limit("client", config)

        assert result.admitted is True
        assert result.remaining == config.requests - 1

    @pytest.mark.asyncio
    async def test_identifiers_are_independent(self, rate_limiter, config):
        for _ in range(3):
            await rate_limiter.check_limit("a", config)

        assert (await rate_limiter.check_limit("a", config)).admitted is False
        assert (await rate_limiter.check_limit("b", config)).admitted is True

    @pytest.mark.asyncio
    async def test_operation_classes_are_independent(self, rate_limiter):
        for _ in range(5):
            await rate_limiter.check_limit("client", RateLimitConfigs.AUTH)

        assert (await rate_limiter.check_limit("client", RateLimitConfigs.AUTH)).admitted is False
        assert (
            await rate_limiter.check_limit("client", RateLimitConfigs.API_GENERAL)
        ).admitted is True

    @pytest.mark.asyncio
    async def test_payout_budget_is_five_per_day(self, rate_limiter, fake_clock):
        results = [
            await rate_limiter.check_limit("partner-1", RateLimitConfigs.PAYOUT_REQUEST)
            for _ in range(6)
        ]

        assert [r.admitted for r in results] == [True] * 5 + [False]
        assert results[-1].retry_after_seconds == 86400


class TestConcurrentCallers:
    """Test admission under concurrent calls on one key."""

    @pytest.mark.asyncio
    async def test_exactly_limit_admitted(self, rate_limiter, config):
        results = await asyncio.gather(
            *(rate_limiter.check_limit("client", config) for _ in range(13))
        )

        admitted = [r for r in results if r.admitted]
        assert len(admitted) == 3
        assert sorted(r.remaining for r in admitted) == [0, 1, 2]
        assert all(r.retry_after_seconds == 60 for r in results if not r.admitted)

    @pytest.mark.asyncio
    async def test_concurrent_payout_requests(self, rate_limiter):
        results = await asyncio.gather(
            *(
                rate_limiter.check_limit("partner-1", RateLimitConfigs.PAYOUT_REQUEST)
                for _ in range(20)
            )
        )

        assert sum(r.admitted for r in results) == 5


class TestFailOpen:
    """Test degraded mode when the store is unavailable."""

    @pytest.mark.asyncio
    async def test_redis_error_admits(self, test_settings, fake_clock, config):
        store = AsyncMock()
        store.hit = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        limiter = RateLimiter(store, settings=test_settings, clock=fake_clock)

        result = await limiter.check_limit("client", config)

        assert result.admitted is True
        assert result.remaining == config.requests
        assert result.reset_at == datetime.fromtimestamp(fake_clock.now + 60, UTC)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [TimeoutError(), OSError("unreachable"), ConnectionError()])
    async def test_transport_errors_admit(self, test_settings, config, error):
        store = AsyncMock()
        store.hit = AsyncMock(side_effect=error)
        limiter = RateLimiter(store, settings=test_settings)

        assert (await limiter.check_limit("client", config)).admitted is True

    @pytest.mark.asyncio
    async def test_programming_errors_propagate(self, test_settings, config):
        store = AsyncMock()
        store.hit = AsyncMock(side_effect=ValueError("bad script result"))
        limiter = RateLimiter(store, settings=test_settings)

        with pytest.raises(ValueError):
            await limiter.check_limit("client", config)


class TestDisabledLimiter:
    """Test rate_limiting_enabled = False."""

    @pytest.mark.asyncio
    async def test_store_not_touched(self, test_settings, config):
        settings = test_settings.model_copy(update={"rate_limiting_enabled": False})
        store = AsyncMock()
        limiter = RateLimiter(store, settings=settings)

        for _ in range(10):
            result = await limiter.check_limit("client", config)
            assert result.admitted is True

        store.hit.assert_not_called()


class TestInMemoryQuotaStore:
    """Test in-memory store housekeeping."""

    @pytest.mark.asyncio
    async def test_purge_expired(self):
        store = InMemoryQuotaStore()
        await store.hit("a", 5, 10, now=100.0)
        await store.hit("b", 5, 60, now=100.0)

        purged = await store.purge_expired(now=110.0)

        assert purged == 1
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_hits_purge_expired_windows(self):
        store = InMemoryQuotaStore(purge_every=3)
        for key in ("a", "b", "c"):
            await store.hit(key, 5, 10, now=100.0)
        assert len(store) == 3

        await store.hit("d", 5, 10, now=200.0)
        await store.hit("e", 5, 10, now=200.0)
        await store.hit("f", 5, 10, now=200.0)

        assert len(store) == 3
        assert (await store.hit("a", 5, 10, now=200.0)).count == 1

    def test_purge_every_must_be_positive(self):
        with pytest.raises(ValueError):
            InMemoryQuotaStore(purge_every=0)

    @pytest.mark.asyncio
    async def test_expired_window_replaced(self):
        store = InMemoryQuotaStore()
        await store.hit("a", 1, 10, now=100.0)

        hit = await store.hit("a", 1, 10, now=110.0)

        assert hit.admitted is True
        assert hit.count == 1
        assert hit.reset_at == 120.0


class TestRedisQuotaStore:
    """Test Redis store with a mocked client."""

    @pytest.mark.asyncio
    async def test_new_window(self, mock_redis_client):
        mock_redis_client.eval = AsyncMock(return_value=[1, 60000, 1])
        store = RedisQuotaStore(mock_redis_client)

        hit = await store.hit("ratelimit:test:client", 3, 60, now=1000.0)

        assert hit.admitted is True
        assert hit.count == 1
        assert hit.reset_at == 1060.0
        args = mock_redis_client.eval.await_args.args
        assert args[1:] == (1, "ratelimit:test:client", 3, 60000)

    @pytest.mark.asyncio
    async def test_refused(self, mock_redis_client):
        mock_redis_client.eval = AsyncMock(return_value=[3, 15000, 0])
        store = RedisQuotaStore(mock_redis_client)

        hit = await store.hit("key", 3, 60, now=1000.0)

        assert hit.admitted is False
        assert hit.reset_at == 1015.0

    @pytest.mark.asyncio
    async def test_limiter_uses_namespaced_key(self, mock_redis_client, test_settings, config):
        limiter = RateLimiter(RedisQuotaStore(mock_redis_client), settings=test_settings)

        await limiter.check_limit("10.0.0.1", config)

        assert mock_redis_client.eval.await_args.args[2] == "ratelimit:test:10.0.0.1"


class TestBuildQuotaStore:
    """Test backend selection."""

    def test_memory_backend(self, test_settings):
        assert isinstance(build_quota_store(test_settings), InMemoryQuotaStore)

    def test_redis_backend(self, test_settings, mock_redis_client):
        settings = test_settings.model_copy(update={"rate_limit_backend": "redis"})

        store = build_quota_store(settings, redis_client=mock_redis_client)

        assert isinstance(store, RedisQuotaStore)
        assert store.redis_client is mock_redis_client


class TestRateLimitConfigs:
    """Test predefined operation classes."""

    @pytest.mark.parametrize(
        "config,requests,window",
        [
            (RateLimitConfigs.API_GENERAL, 100, 60),
            (RateLimitConfigs.AUTH, 5, 60),
            (RateLimitConfigs.SHARE_TRACKING, 30, 60),
            (RateLimitConfigs.CAMPAIGN_CREATE, 10, 3600),
            (RateLimitConfigs.PAYOUT_REQUEST, 5, 86400),
            (RateLimitConfigs.DATA_EXPORT, 10, 3600),
        ],
    )
    def test_limits(self, config, requests, window):
        assert config.requests == requests
        assert config.window_seconds == window

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            RateLimitConfig(requests=0, window_seconds=60, operation_class="x")
