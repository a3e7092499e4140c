"""
Partner payout settlement service.

Rate limiting, fee calculation, transactional persistence and the payout
status lifecycle for partner commission settlements.
"""

__version__ = "0.1.0"
