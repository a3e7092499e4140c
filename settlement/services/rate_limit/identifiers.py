"""
Client identification for rate limiting.
"""

import hashlib
from collections.abc import Mapping

from settlement.services.rate_limit.limiter import RateLimitResult
from settlement.utils.datetime_utils import to_epoch_ms


def _header(headers: Mapping[str, str], name: str) -> str | None:
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def get_client_identifier(headers: Mapping[str, str]) -> str:
    """
    Derive a stable caller identifier from request headers.

    Priority: first X-Forwarded-For entry, X-Real-IP, then a hash of the
    User-Agent prefixed with "ua:".

    Args:
        headers: Request headers (names are case-insensitive)

    Returns:
        Caller identifier
    """
    forwarded = _header(headers, "x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = _header(headers, "x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    user_agent = _header(headers, "user-agent") or "unknown"
    digest = hashlib.sha256(user_agent.encode("utf-8")).hexdigest()[:16]
    return f"ua:{digest}"


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Response headers describing the rate limit state."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(to_epoch_ms(result.reset_at)),
    }
    if not result.admitted and result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers
