"""
Background jobs.

Dramatiq actors for gateway transfers and stale payout monitoring.
"""
