"""
Datetime utilities.

All settlement timestamps are timezone-aware UTC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime with timezone info."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes read back from the database.

    Args:
        value: Datetime, naive or aware

    Returns:
        Timezone-aware datetime
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_epoch_ms(value: datetime) -> int:
    """Convert datetime to epoch milliseconds (rate limit headers)."""
    return int(ensure_utc(value).timestamp() * 1000)
