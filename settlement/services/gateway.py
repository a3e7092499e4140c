"""
Payment gateway.

External collaborator that moves money to a partner's connected account.
A simulated gateway is shipped for development and tests.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from loguru import logger

from settlement.config.constants import ESTIMATED_ARRIVAL_DAYS
from settlement.utils.datetime_utils import utc_now


@dataclass(frozen=True)
class TransferReceipt:
    """Platform-to-account transfer."""

    transfer_id: str


@dataclass(frozen=True)
class GatewayPayout:
    """Account-to-bank payout."""

    payout_id: str
    arrival_date: datetime | None = None


class PaymentGateway(Protocol):
    """
    Gateway contract.

    Implementations raise GatewayError when the provider rejected the
    request (no funds moved). Calls sharing an idempotency key must return
    the original result instead of moving funds again.
    """

    async def create_transfer(
        self,
        destination: str,
        amount_cents: int,
        currency: str,
        metadata: dict[str, Any],
        idempotency_key: str,
    ) -> TransferReceipt:
        ...

    async def create_payout(
        self,
        destination: str,
        amount_cents: int,
        currency: str,
        metadata: dict[str, Any],
        idempotency_key: str,
    ) -> GatewayPayout:
        ...


def transfer_idempotency_key(payout_id: str) -> str:
    return f"payout-{payout_id}-transfer"


def bank_payout_idempotency_key(payout_id: str) -> str:
    return f"payout-{payout_id}-bank"


class SimulatedPaymentGateway:
    """Gateway used when no provider is configured."""

    def __init__(self, arrival_days: int = ESTIMATED_ARRIVAL_DAYS) -> None:
        self.arrival_days = arrival_days
        self._transfers: dict[str, TransferReceipt] = {}
        self._payouts: dict[str, GatewayPayout] = {}
        self.logger = logger.bind(service="SimulatedPaymentGateway")

    async def create_transfer(
        self,
        destination: str,
        amount_cents: int,
        currency: str,
        metadata: dict[str, Any],
        idempotency_key: str,
    ) -> TransferReceipt:
        if idempotency_key in self._transfers:
            return self._transfers[idempotency_key]

        receipt = TransferReceipt(transfer_id=f"mock_tr_{uuid.uuid4().hex[:24]}")
        self._transfers[idempotency_key] = receipt
        self.logger.info(
            f"Simulated transfer {receipt.transfer_id} of {amount_cents} {currency}",
            extra={"destination": destination, "metadata": metadata},
        )
        return receipt

    async def create_payout(
        self,
        destination: str,
        amount_cents: int,
        currency: str,
        metadata: dict[str, Any],
        idempotency_key: str,
    ) -> GatewayPayout:
        if idempotency_key in self._payouts:
            return self._payouts[idempotency_key]

        payout = GatewayPayout(
            payout_id=f"mock_po_{uuid.uuid4().hex[:24]}",
            arrival_date=utc_now() + timedelta(days=self.arrival_days),
        )
        self._payouts[idempotency_key] = payout
        self.logger.info(
            f"Simulated payout {payout.payout_id} of {amount_cents} {currency}",
            extra={"destination": destination, "metadata": metadata},
        )
        return payout
