"""
Business constants.

Central location for payout rules and rate-limit classes used across the
settlement services. Runtime overrides live in settings.
"""

from decimal import Decimal


# ========================================================================
# PAYOUT CONSTANTS
# ========================================================================

# Minimum payout amount in cents ($10.00)
MIN_PAYOUT_AMOUNT_CENTS = 1000

# Platform fee (1% of the gross amount)
PLATFORM_FEE_RATE = Decimal("0.01")

# Flat gateway fee per payout to bank ($0.25)
GATEWAY_FEE_CENTS = 25

DEFAULT_CURRENCY = "usd"

# Simulated bank arrival for gateway payouts
ESTIMATED_ARRIVAL_DAYS = 2

# Payouts left in PROCESSING longer than this are failed by the monitor
STALE_PROCESSING_HOURS = 72

# Payout history paging
PAYOUT_HISTORY_DEFAULT_LIMIT = 20
PAYOUT_HISTORY_MAX_LIMIT = 100

# ========================================================================
# TRANSACTION CONSTANTS
# ========================================================================

TRANSACTION_MAX_WAIT_SECONDS = 5.0  # Time to acquire a transaction slot
TRANSACTION_TIMEOUT_SECONDS = 10.0  # Total execution time of a unit of work
TRANSACTION_MAX_RETRIES = 3
TRANSACTION_RETRY_BASE_DELAY = 0.1  # 2^attempt * 100ms

# ========================================================================
# COLLABORATOR TIMEOUTS
# ========================================================================

GATEWAY_TIMEOUT_SECONDS = 30.0
NOTIFICATION_TIMEOUT_SECONDS = 10.0

# ========================================================================
# RATE LIMIT CLASSES
# ========================================================================

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

# operation class -> (requests, window seconds)
RATE_LIMIT_CLASSES: dict[str, tuple[int, int]] = {
    "api_general": (100, MINUTE),  # General API calls
    "auth": (5, MINUTE),  # Brute force protection
    "share": (30, MINUTE),  # Share tracking
    "campaign_create": (10, HOUR),
    "payout": (5, DAY),  # Payout requests
    "export": (10, HOUR),  # Data export
}

RATE_LIMIT_KEY_PREFIX = "ratelimit"
