"""
Exception handling utilities.

Defines categorized settlement errors. Every error carries a stable
machine-readable code so the calling layer can render a precise message
without inspecting free text.
"""

from typing import Any


class ErrorCode:
    """Stable error codes exposed to the calling layer."""

    BELOW_MINIMUM = "BELOW_MINIMUM"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_METHOD = "INVALID_METHOD"
    FEES_EXCEED_AMOUNT = "FEES_EXCEED_AMOUNT"
    PAYOUT_ACCOUNT_MISSING = "PAYOUT_ACCOUNT_MISSING"
    RATE_LIMITED = "RATE_LIMITED"
    PARTNER_NOT_FOUND = "PARTNER_NOT_FOUND"
    PAYOUT_NOT_FOUND = "PAYOUT_NOT_FOUND"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    GATEWAY_ERROR = "GATEWAY_ERROR"


class SettlementError(Exception):
    """Base class for all settlement failures."""

    default_code = "SETTLEMENT_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict[str, Any]:
        """Render error for the surrounding API layer."""
        return {"error": self.message, "error_code": self.code}


class ValidationError(SettlementError):
    """Bad input. Local, never retried."""

    default_code = ErrorCode.INVALID_AMOUNT


class InvalidAmount(ValidationError):
    """Raised when an amount is not a positive integer number of cents."""

    default_code = ErrorCode.INVALID_AMOUNT


class RateLimitExceeded(SettlementError):
    """Raised when the caller exhausted the window budget."""

    default_code = ErrorCode.RATE_LIMITED

    def __init__(self, message: str, retry_after_seconds: int) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class NotFoundError(SettlementError):
    """Partner or payout absent. Terminal."""

    default_code = ErrorCode.PAYOUT_NOT_FOUND


class PersistenceError(SettlementError):
    """Storage failure, distinguishable from business errors."""

    default_code = ErrorCode.PERSISTENCE_ERROR


class TransactionError(PersistenceError):
    """
    Raised by the transaction wrapper.

    Either contention retries were exhausted or a non-retryable
    database error occurred.
    """

    def __init__(
        self, message: str, attempts: int = 1, retryable: bool = False
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.retryable = retryable


class InvalidStateTransition(SettlementError):
    """State-machine guard violation (caller or webhook ordering bug)."""

    default_code = ErrorCode.INVALID_STATE_TRANSITION

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move payout from {current} to {target}")
        self.current = current
        self.target = target


class GatewayError(SettlementError):
    """External payment provider failure."""

    default_code = ErrorCode.GATEWAY_ERROR
