"""
Rate limit configuration.

Operation classes are independent key namespaces: exhausting one class
never affects another.
"""

from dataclasses import dataclass

from settlement.config.constants import RATE_LIMIT_CLASSES


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window limit for one operation class."""

    requests: int
    window_seconds: int
    operation_class: str

    def __post_init__(self) -> None:
        if self.requests <= 0:
            raise ValueError("requests must be positive")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")


def _config(operation_class: str) -> RateLimitConfig:
    requests, window_seconds = RATE_LIMIT_CLASSES[operation_class]
    return RateLimitConfig(
        requests=requests,
        window_seconds=window_seconds,
        operation_class=operation_class,
    )


class RateLimitConfigs:
    """Predefined operation classes."""

    API_GENERAL = _config("api_general")
    AUTH = _config("auth")
    SHARE_TRACKING = _config("share")
    CAMPAIGN_CREATE = _config("campaign_create")
    PAYOUT_REQUEST = _config("payout")
    DATA_EXPORT = _config("export")
