"""
Rate limiting.

Fixed-window limits per caller and operation class with Redis or
in-process quota stores.
"""

from settlement.services.rate_limit.config import RateLimitConfig, RateLimitConfigs
from settlement.services.rate_limit.identifiers import (
    get_client_identifier,
    rate_limit_headers,
)
from settlement.services.rate_limit.limiter import RateLimiter, RateLimitResult
from settlement.services.rate_limit.stores import (
    InMemoryQuotaStore,
    QuotaHit,
    QuotaStore,
    RedisQuotaStore,
    build_quota_store,
)


__all__ = [
    "InMemoryQuotaStore",
    "QuotaHit",
    "QuotaStore",
    "RateLimitConfig",
    "RateLimitConfigs",
    "RateLimitResult",
    "RateLimiter",
    "RedisQuotaStore",
    "build_quota_store",
    "get_client_identifier",
    "rate_limit_headers",
]
