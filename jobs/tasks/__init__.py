"""
Dramatiq actors.

Importing this package configures the Redis broker before actors register.
"""

from jobs.broker import broker  # noqa: F401
