"""
Settlement engine.

Drives partner payouts through their lifecycle:

    request_payout -> PENDING -> PROCESSING -> COMPLETED | FAILED
                                            -> CANCELLED (operator)

Every status re-check and mutation runs inside one retry-guarded
transaction with the payout row locked, so duplicate webhook deliveries
observe the terminal state. Gateway transfers run after the request
commits, each gateway step persisted in its own transaction. Notices
never affect persisted state.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.config.constants import (
    PAYOUT_HISTORY_DEFAULT_LIMIT,
    PAYOUT_HISTORY_MAX_LIMIT,
)
from settlement.config.settings import Settings, settings as default_settings
from settlement.models.enums import NoticeType, PaymentMethod, PayoutStatus
from settlement.models.partner import Partner
from settlement.models.payout import Payout
from settlement.repositories.partner_repository import PartnerRepository
from settlement.repositories.payout_repository import PayoutRepository
from settlement.services.fees import FeeBreakdown, FeeCalculator
from settlement.services.gateway import (
    PaymentGateway,
    TransferReceipt,
    bank_payout_idempotency_key,
    transfer_idempotency_key,
)
from settlement.services.notification.base import PayoutNotifier
from settlement.services.payout.dispatch import (
    InProcessTransferDispatcher,
    TransferDispatcher,
)
from settlement.services.payout.results import (
    PayoutStats,
    PayoutSummary,
    TransitionOutcome,
    TransitionResult,
)
from settlement.services.payout.state_machine import assert_transition, is_terminal
from settlement.services.rate_limit.config import RateLimitConfigs
from settlement.services.rate_limit.limiter import RateLimiter
from settlement.utils.background import BackgroundTasks
from settlement.utils.datetime_utils import utc_now
from settlement.utils.exceptions import (
    ErrorCode,
    GatewayError,
    InvalidAmount,
    NotFoundError,
    PersistenceError,
    RateLimitExceeded,
    ValidationError,
)
from settlement.utils.transactions import TransactionRunner


T = TypeVar("T")

GATEWAY_EVENTS = frozenset(
    {"payout.paid", "payout.failed", "payout.canceled", "transfer.reversed"}
)

PayoutRepoFactory = Callable[[AsyncSession], PayoutRepository]
PartnerRepoFactory = Callable[[AsyncSession], PartnerRepository]


@dataclass
class _AppliedTransition:
    result: TransitionResult
    payout: Payout
    partner: Partner | None


def _transfer_in_flight(payout: Payout) -> bool:
    return bool(payout.transfer_started_at or payout.gateway_transfer_id)


def breakdown_of(payout: Payout) -> FeeBreakdown:
    """Rebuild fee breakdown from a stored payout."""
    return FeeBreakdown(
        gross_amount=payout.gross_amount,
        platform_fee=payout.platform_fee,
        gateway_fee=payout.gateway_fee,
        net_amount=payout.net_amount,
    )


class SettlementEngine:
    """Partner payout settlement."""

    def __init__(
        self,
        runner: TransactionRunner,
        rate_limiter: RateLimiter,
        gateway: PaymentGateway,
        notifier: PayoutNotifier,
        settings: Settings = default_settings,
        transfer_dispatcher: TransferDispatcher | None = None,
        background: BackgroundTasks | None = None,
        payout_repo_factory: PayoutRepoFactory = PayoutRepository,
        partner_repo_factory: PartnerRepoFactory = PartnerRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize settlement engine.

        Args:
            runner: Transaction runner for all reads and writes
            rate_limiter: Rate limiter for payout requests
            gateway: Payment gateway
            notifier: Payout notifier
            settings: Application settings
            transfer_dispatcher: Transfer hand-off (defaults to in-process)
            background: Background task tracker
            payout_repo_factory: Builds payout repository from a session
            partner_repo_factory: Builds partner repository from a session
            clock: UTC clock (injectable for tests)
        """
        self.runner = runner
        self.rate_limiter = rate_limiter
        self.gateway = gateway
        self.notifier = notifier
        self.settings = settings
        self.background = background or BackgroundTasks()
        self.transfer_dispatcher = transfer_dispatcher or InProcessTransferDispatcher(
            self.execute_transfer, self.background
        )
        self.payout_repo_factory = payout_repo_factory
        self.partner_repo_factory = partner_repo_factory
        self._clock = clock

        self.fee_calculator = FeeCalculator(
            platform_fee_rate=settings.platform_fee_rate,
            gateway_fee_cents=settings.gateway_fee_cents,
        )
        self.logger = logger.bind(service="SettlementEngine")

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request_payout(
        self,
        partner_id: str,
        amount_cents: int,
        method: str = PaymentMethod.GATEWAY.value,
    ) -> PayoutSummary:
        """
        Request a payout for a partner.

        Validation happens before the rate limit check, so rejected amounts
        consume no quota.

        Args:
            partner_id: Partner ID
            amount_cents: Gross amount in cents
            method: Payment method (gateway or manual)

        Returns:
            PayoutSummary with status PENDING or PROCESSING

        Raises:
            ValidationError: Bad amount, method, account or fees
            RateLimitExceeded: Payout budget exhausted
            NotFoundError: Partner not found
            PersistenceError: Record could not be created
        """
        self._validate_amount(amount_cents)
        payment_method = self._validate_method(method)

        limit = await self.rate_limiter.check_limit(
            partner_id, RateLimitConfigs.PAYOUT_REQUEST
        )
        if not limit.admitted:
            raise RateLimitExceeded(
                "Too many payout requests. Please try again later.",
                retry_after_seconds=limit.retry_after_seconds or 0,
            )

        advance = (
            payment_method is PaymentMethod.GATEWAY
            or not self.settings.manual_payouts_require_approval
        )

        async def create(
            session: AsyncSession,
        ) -> tuple[Payout, Partner, FeeBreakdown]:
            partner = await self.partner_repo_factory(session).find_by_id(partner_id)
            if partner is None:
                raise NotFoundError(
                    "Partner not found", code=ErrorCode.PARTNER_NOT_FOUND
                )
            if payment_method is PaymentMethod.GATEWAY and not partner.payout_account_id:
                raise ValidationError(
                    "Partner has not connected a payout account",
                    code=ErrorCode.PAYOUT_ACCOUNT_MISSING,
                )

            breakdown = self.fee_calculator.calculate(amount_cents)
            if breakdown.net_amount < 0:
                raise ValidationError(
                    "Fees exceed the requested amount",
                    code=ErrorCode.FEES_EXCEED_AMOUNT,
                )

            payout_repo = self.payout_repo_factory(session)
            payout = await payout_repo.create(
                partner_id=partner_id,
                status=PayoutStatus.PENDING.value,
                gross_amount=breakdown.gross_amount,
                platform_fee=breakdown.platform_fee,
                gateway_fee=breakdown.gateway_fee,
                net_amount=breakdown.net_amount,
                currency=self.settings.payout_currency,
                payment_method=payment_method.value,
                requested_at=self._clock(),
            )

            if advance:
                assert_transition(payout.status, PayoutStatus.PROCESSING)
                payout = await payout_repo.update(
                    payout.id,
                    status=PayoutStatus.PROCESSING.value,
                    processed_at=self._clock(),
                )

            return payout, partner, breakdown

        payout, partner, breakdown = await self._transaction(create)

        self.logger.info(
            "Payout requested",
            extra={
                "payout_id": payout.id,
                "partner_id": partner_id,
                "amount": amount_cents,
                "method": payment_method.value,
                "status": payout.status,
            },
        )

        estimated_arrival = None
        if payout.status == PayoutStatus.PROCESSING.value:
            if payment_method is PaymentMethod.GATEWAY:
                estimated_arrival = self._clock() + timedelta(
                    days=self.settings.payout_estimated_arrival_days
                )
                await self._dispatch_transfer(payout.id)
            self._notify(
                partner,
                breakdown,
                NoticeType.PROCESSING,
                {
                    "payout_id": payout.id,
                    "currency": payout.currency,
                    "payment_method": payout.payment_method,
                    "estimated_arrival": estimated_arrival,
                },
            )

        return PayoutSummary.from_payout(payout, estimated_arrival=estimated_arrival)

    async def approve_payout(self, payout_id: str) -> TransitionResult:
        """
        Approve a PENDING payout (operator action).

        Moves it to PROCESSING and hands gateway payouts to the transfer
        dispatcher.

        Args:
            payout_id: Payout ID

        Returns:
            TransitionResult

        Raises:
            NotFoundError: Payout not found
            InvalidStateTransition: Payout is not PENDING
        """
        applied = await self._apply_transition(
            payout_id,
            PayoutStatus.PROCESSING,
            lambda payout: {"processed_at": self._clock()},
        )
        if not applied.result.applied:
            return applied.result

        payout = applied.payout
        self.logger.info(
            f"Payout {payout_id} approved",
            extra={"partner_id": payout.partner_id, "method": payout.payment_method},
        )

        estimated_arrival = None
        if payout.payment_method == PaymentMethod.GATEWAY.value:
            estimated_arrival = self._clock() + timedelta(
                days=self.settings.payout_estimated_arrival_days
            )
            await self._dispatch_transfer(payout.id)

        self._notify(
            applied.partner,
            breakdown_of(payout),
            NoticeType.PROCESSING,
            {
                "payout_id": payout.id,
                "currency": payout.currency,
                "payment_method": payout.payment_method,
                "estimated_arrival": estimated_arrival,
            },
        )
        return applied.result

    # ------------------------------------------------------------------
    # Gateway
    # ------------------------------------------------------------------

    async def execute_transfer(self, payout_id: str) -> TransferReceipt | None:
        """
        Move funds for a PROCESSING gateway payout.

        The payout is claimed under a row lock before the gateway is called,
        so a redelivered task never transfers twice. Once the gateway has
        accepted the transfer its ID is recorded in its own transaction and
        the payout stays PROCESSING until the gateway webhook confirms or
        fails the bank payout.

        Only a definite gateway rejection of the transfer fails the payout.
        A timeout, a bank payout error or a storage error after the transfer
        leaves the payout PROCESSING for reconciliation.

        Args:
            payout_id: Payout ID

        Returns:
            TransferReceipt, or None if nothing was transferred

        Raises:
            NotFoundError: Payout not found
            PersistenceError: Claim could not be stored (gateway not called)
        """
        claim = await self._transaction(
            lambda session: self._claim_transfer(session, payout_id)
        )
        if claim is None:
            return None

        payout, destination = claim
        if not destination:
            await self.fail_payout(payout_id, "Partner has no payout account")
            return None

        metadata = {"internal_payout_id": payout.id, "partner_id": payout.partner_id}
        timeout = self.settings.gateway_timeout
        try:
            receipt = await asyncio.wait_for(
                self.gateway.create_transfer(
                    destination,
                    payout.net_amount,
                    payout.currency,
                    metadata=metadata,
                    idempotency_key=transfer_idempotency_key(payout.id),
                ),
                timeout=timeout,
            )
        except GatewayError as e:
            self.logger.error(
                f"Gateway rejected transfer for payout {payout_id}",
                extra={"partner_id": payout.partner_id, "error": str(e)},
            )
            await self.fail_payout(payout_id, f"Gateway error: {e}")
            return None
        except TimeoutError:
            # Outcome unknown, funds may have moved
            self.logger.error(
                f"Gateway transfer timed out for payout {payout_id}, "
                "left PROCESSING for reconciliation",
                extra={"partner_id": payout.partner_id},
            )
            return None

        await self._record_gateway_ids(payout_id, gateway_transfer_id=receipt.transfer_id)

        try:
            bank_payout = await asyncio.wait_for(
                self.gateway.create_payout(
                    destination,
                    payout.net_amount,
                    payout.currency,
                    metadata=metadata,
                    idempotency_key=bank_payout_idempotency_key(payout.id),
                ),
                timeout=timeout,
            )
        except (GatewayError, TimeoutError) as e:
            self.logger.error(
                f"Bank payout not created for payout {payout_id} after "
                f"transfer {receipt.transfer_id}, left PROCESSING for reconciliation",
                extra={"partner_id": payout.partner_id, "error": str(e) or "timeout"},
            )
            return receipt

        await self._record_gateway_ids(
            payout_id, gateway_payout_id=bank_payout.payout_id
        )
        self.logger.info(
            f"Gateway transfer created for payout {payout_id}",
            extra={
                "transfer_id": receipt.transfer_id,
                "bank_payout_id": bank_payout.payout_id,
                "arrival_date": bank_payout.arrival_date,
            },
        )
        return receipt

    async def _claim_transfer(
        self, session: AsyncSession, payout_id: str
    ) -> tuple[Payout, str | None] | None:
        repo = self.payout_repo_factory(session)
        payout = await repo.find_by_id(payout_id, for_update=True)
        if payout is None:
            raise NotFoundError(f"Payout {payout_id} not found")

        if payout.status != PayoutStatus.PROCESSING.value:
            self.logger.warning(
                f"Skipping transfer for payout {payout_id} in status {payout.status}"
            )
            return None
        if payout.payment_method != PaymentMethod.GATEWAY.value:
            self.logger.warning(f"Skipping transfer for manual payout {payout_id}")
            return None
        if payout.gateway_transfer_id or payout.external_transaction_id:
            # Redelivered task
            self.logger.info(
                f"Payout {payout_id} already transferred "
                f"({payout.gateway_transfer_id or payout.external_transaction_id})"
            )
            return None
        if payout.transfer_started_at is not None:
            self.logger.error(
                f"Transfer for payout {payout_id} started at "
                f"{payout.transfer_started_at} with no recorded outcome, "
                "needs reconciliation"
            )
            return None

        partner = await self.partner_repo_factory(session).find_by_id(
            payout.partner_id
        )
        destination = partner.payout_account_id if partner else None
        if destination:
            payout = await repo.update(payout_id, transfer_started_at=self._clock())
        return payout, destination

    async def _record_gateway_ids(self, payout_id: str, **ids: str) -> None:
        """Store gateway IDs after funds moved. Never raises PersistenceError."""

        async def record(session: AsyncSession) -> None:
            repo = self.payout_repo_factory(session)
            current = await repo.find_by_id(payout_id, for_update=True)
            if current is None:
                return
            fields = dict(ids)
            transfer_id = ids.get("gateway_transfer_id")
            if transfer_id:
                if current.status == PayoutStatus.PROCESSING.value:
                    fields["external_transaction_id"] = transfer_id
                else:
                    self.logger.warning(
                        f"Payout {payout_id} left PROCESSING during transfer "
                        f"{transfer_id}, only gateway transfer ID recorded"
                    )
            await repo.update(payout_id, **fields)

        try:
            await self._transaction(record)
        except PersistenceError as e:
            # Retrying the task would move funds again
            self.logger.critical(
                f"Could not record gateway IDs for payout {payout_id}",
                extra={**ids, "error": str(e)},
            )

    async def handle_gateway_event(
        self, event_type: str, data: dict[str, Any]
    ) -> TransitionResult | None:
        """
        Apply a gateway webhook event to its payout.

        The payout is found through the internal_payout_id metadata set on
        transfer and bank payout, falling back to the stored bank payout ID.

        Args:
            event_type: Gateway event type (e.g. "payout.paid")
            data: Event object

        Returns:
            TransitionResult, or None if the event changed nothing
        """
        if event_type not in GATEWAY_EVENTS:
            self.logger.debug(f"Ignoring gateway event {event_type}")
            return None

        gateway_object_id = data.get("id")
        payout_id = (data.get("metadata") or {}).get("internal_payout_id")
        if not payout_id and gateway_object_id:

            async def lookup(session: AsyncSession) -> str | None:
                payout = await self.payout_repo_factory(
                    session
                ).find_by_gateway_payout_id(gateway_object_id)
                return payout.id if payout else None

            payout_id = await self._transaction(lookup)

        if not payout_id:
            self.logger.warning(
                f"Gateway event {event_type} matches no payout",
                extra={"gateway_object_id": gateway_object_id},
            )
            return None

        try:
            if event_type == "payout.paid":
                return await self.complete_payout(
                    payout_id,
                    gateway_object_id,
                    gateway_payout_id=gateway_object_id,
                )
            if event_type == "payout.failed":
                return await self.fail_payout(
                    payout_id, data.get("failure_message") or "Payout failed"
                )
            if event_type == "payout.canceled":
                return await self.fail_payout(payout_id, "Payout was canceled")
        except NotFoundError:
            self.logger.warning(
                f"Gateway event {event_type} for unknown payout {payout_id}"
            )
            return None

        self.logger.warning(
            f"Transfer reversed for payout {payout_id}",
            extra={"transfer_id": gateway_object_id},
        )
        return None

    # ------------------------------------------------------------------
    # Lifecycle callbacks
    # ------------------------------------------------------------------

    async def complete_payout(
        self,
        payout_id: str,
        external_transaction_id: str,
        gateway_payout_id: str | None = None,
    ) -> TransitionResult:
        """
        Confirm a PROCESSING payout.

        Safe to call repeatedly: a terminal payout yields ALREADY_TERMINAL
        with no mutation and no notice. A transfer ID recorded by
        execute_transfer is kept over the one given here.

        Args:
            payout_id: Payout ID
            external_transaction_id: Gateway or bank transaction ID
            gateway_payout_id: Bank payout ID from the gateway webhook

        Returns:
            TransitionResult

        Raises:
            NotFoundError: Payout not found
            InvalidStateTransition: Payout is still PENDING
        """
        applied = await self._apply_transition(
            payout_id,
            PayoutStatus.COMPLETED,
            lambda payout: self._completion_fields(
                payout, external_transaction_id, gateway_payout_id
            ),
        )
        if not applied.result.applied:
            return applied.result

        payout = applied.payout
        transaction_id = payout.external_transaction_id
        self.logger.info(
            "Payout completed",
            extra={
                "payout_id": payout_id,
                "transaction_id": transaction_id,
                "partner_id": payout.partner_id,
            },
        )
        self._notify(
            applied.partner,
            breakdown_of(payout),
            NoticeType.COMPLETED,
            {
                "payout_id": payout_id,
                "currency": payout.currency,
                "payment_method": payout.payment_method,
                "transaction_id": transaction_id,
            },
        )
        return applied.result

    def _completion_fields(
        self,
        payout: Payout,
        external_transaction_id: str,
        gateway_payout_id: str | None,
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "completed_at": self._clock(),
            "external_transaction_id": payout.external_transaction_id
            or external_transaction_id,
        }
        if gateway_payout_id and not payout.gateway_payout_id:
            fields["gateway_payout_id"] = gateway_payout_id
        return fields

    async def fail_payout(
        self, payout_id: str, reason: str, skip_if_transferred: bool = False
    ) -> TransitionResult:
        """
        Fail a PENDING or PROCESSING payout.

        Safe to call repeatedly: a terminal payout yields ALREADY_TERMINAL
        with no mutation and no notice.

        Args:
            payout_id: Payout ID
            reason: Failure reason shown to the partner
            skip_if_transferred: Leave a payout unchanged (SKIPPED) once its
                transfer was claimed or recorded

        Returns:
            TransitionResult

        Raises:
            NotFoundError: Payout not found
        """
        applied = await self._apply_transition(
            payout_id,
            PayoutStatus.FAILED,
            lambda payout: {
                "failure_reason": reason,
                "external_transaction_id": None,
            },
            skip_if=_transfer_in_flight if skip_if_transferred else None,
        )
        if not applied.result.applied:
            return applied.result

        payout = applied.payout
        self.logger.warning(
            "Payout failed",
            extra={
                "payout_id": payout_id,
                "reason": reason,
                "partner_id": payout.partner_id,
            },
        )
        self._notify(
            applied.partner,
            breakdown_of(payout),
            NoticeType.FAILED,
            {
                "payout_id": payout_id,
                "currency": payout.currency,
                "payment_method": payout.payment_method,
                "reason": reason,
            },
        )
        return applied.result

    async def cancel_payout(
        self, payout_id: str, reason: str | None = None
    ) -> TransitionResult:
        """
        Cancel a PENDING or PROCESSING payout (operator action).

        Args:
            payout_id: Payout ID
            reason: Optional cancellation reason

        Returns:
            TransitionResult

        Raises:
            NotFoundError: Payout not found
        """
        applied = await self._apply_transition(
            payout_id,
            PayoutStatus.CANCELLED,
            lambda payout: {
                "cancelled_at": self._clock(),
                "failure_reason": reason,
                "external_transaction_id": None,
            },
        )
        if not applied.result.applied:
            return applied.result

        payout = applied.payout
        self.logger.info(
            "Payout cancelled",
            extra={
                "payout_id": payout_id,
                "reason": reason,
                "previous_status": applied.result.previous_status,
            },
        )
        self._notify(
            applied.partner,
            breakdown_of(payout),
            NoticeType.CANCELLED,
            {
                "payout_id": payout_id,
                "currency": payout.currency,
                "payment_method": payout.payment_method,
                "reason": reason,
            },
        )
        return applied.result

    async def fail_stale_payouts(self, older_than_hours: int | None = None) -> int:
        """
        Fail payouts stuck in PROCESSING.

        Only payouts the gateway was never asked to transfer are failed.
        Claimed or transferred payouts are logged for reconciliation.

        Args:
            older_than_hours: Age threshold (defaults to settings)

        Returns:
            Number of payouts failed
        """
        hours = (
            self.settings.stale_processing_hours
            if older_than_hours is None
            else older_than_hours
        )
        cutoff = self._clock() - timedelta(hours=hours)

        async def load(session: AsyncSession) -> list[str]:
            stale = await self.payout_repo_factory(session).find_stale_processing(
                cutoff
            )
            return [payout.id for payout in stale]

        stale_ids = await self._transaction(load)

        failed = 0
        for payout_id in stale_ids:
            result = await self.fail_payout(
                payout_id,
                f"Payout was not confirmed within {hours} hours",
                skip_if_transferred=True,
            )
            if result.applied:
                failed += 1

        if stale_ids:
            self.logger.warning(
                f"Failed {failed} stale payouts (found {len(stale_ids)})"
            )

        await self._report_unconfirmed_transfers(cutoff)
        return failed

    async def _report_unconfirmed_transfers(self, cutoff: datetime) -> None:
        async def load(session: AsyncSession) -> list[Payout]:
            return await self.payout_repo_factory(session).find_stale_transferred(
                cutoff
            )

        for payout in await self._transaction(load):
            self.logger.warning(
                f"Payout {payout.id} transferred but unconfirmed, "
                "needs reconciliation with the gateway",
                extra={
                    "partner_id": payout.partner_id,
                    "transfer_id": payout.gateway_transfer_id,
                    "bank_payout_id": payout.gateway_payout_id,
                    "transfer_started_at": payout.transfer_started_at,
                },
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_partner_payouts(
        self,
        partner_id: str,
        status: str | None = None,
        limit: int = PAYOUT_HISTORY_DEFAULT_LIMIT,
        offset: int = 0,
    ) -> list[PayoutSummary]:
        """
        Get partner payout history, newest first.

        Args:
            partner_id: Partner ID
            status: Optional status filter
            limit: Page size, clamped to 1..100
            offset: Number of payouts to skip

        Returns:
            List of PayoutSummary
        """
        limit = max(1, min(limit, PAYOUT_HISTORY_MAX_LIMIT))
        offset = max(0, offset)

        async def load(session: AsyncSession) -> list[Payout]:
            return await self.payout_repo_factory(session).find_by_partner_id(
                partner_id, status=status, limit=limit, offset=offset
            )

        payouts = await self._transaction(load)
        return [PayoutSummary.from_payout(payout) for payout in payouts]

    async def get_partner_payout_stats(self, partner_id: str) -> PayoutStats:
        """
        Get partner payout totals.

        Args:
            partner_id: Partner ID

        Returns:
            PayoutStats with net sums per status
        """
        page_size = PAYOUT_HISTORY_MAX_LIMIT

        async def load(session: AsyncSession) -> list[Payout]:
            repo = self.payout_repo_factory(session)
            payouts: list[Payout] = []
            offset = 0
            while True:
                page = await repo.find_by_partner_id(
                    partner_id, limit=page_size, offset=offset
                )
                payouts.extend(page)
                if len(page) < page_size:
                    return payouts
                offset += page_size

        payouts = await self._transaction(load)

        total_paid = total_pending = total_processing = payout_count = 0
        last_payout_date: datetime | None = None
        for payout in payouts:
            if payout.status == PayoutStatus.COMPLETED.value:
                total_paid += payout.net_amount
                payout_count += 1
                if payout.completed_at and (
                    last_payout_date is None or payout.completed_at > last_payout_date
                ):
                    last_payout_date = payout.completed_at
            elif payout.status == PayoutStatus.PENDING.value:
                total_pending += payout.net_amount
            elif payout.status == PayoutStatus.PROCESSING.value:
                total_processing += payout.net_amount

        return PayoutStats(
            total_paid=total_paid,
            total_pending=total_pending,
            total_processing=total_processing,
            payout_count=payout_count,
            last_payout_date=last_payout_date,
        )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight transfers and notices (shutdown)."""
        await self.background.drain(timeout=timeout)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _transaction(
        self, unit_of_work: Callable[[AsyncSession], Awaitable[T]]
    ) -> T:
        return await self.runner.run(
            unit_of_work, max_retries=self.settings.transaction_max_retries
        )

    async def _apply_transition(
        self,
        payout_id: str,
        target: PayoutStatus,
        fields: Callable[[Payout], dict[str, Any]],
        skip_if: Callable[[Payout], bool] | None = None,
    ) -> _AppliedTransition:
        """Re-check status and mutate under a row lock."""

        async def transition(session: AsyncSession) -> _AppliedTransition:
            repo = self.payout_repo_factory(session)
            payout = await repo.find_by_id(payout_id, for_update=True)
            if payout is None:
                raise NotFoundError(f"Payout {payout_id} not found")

            previous = payout.status
            if is_terminal(previous):
                return _AppliedTransition(
                    result=TransitionResult(
                        outcome=TransitionOutcome.ALREADY_TERMINAL,
                        payout_id=payout_id,
                        status=previous,
                        previous_status=previous,
                    ),
                    payout=payout,
                    partner=None,
                )

            if skip_if is not None and skip_if(payout):
                return _AppliedTransition(
                    result=TransitionResult(
                        outcome=TransitionOutcome.SKIPPED,
                        payout_id=payout_id,
                        status=previous,
                        previous_status=previous,
                    ),
                    payout=payout,
                    partner=None,
                )

            assert_transition(previous, target)
            payout = await repo.update(
                payout_id, status=target.value, **fields(payout)
            )
            partner = await self.partner_repo_factory(session).find_by_id(
                payout.partner_id
            )
            return _AppliedTransition(
                result=TransitionResult(
                    outcome=TransitionOutcome.APPLIED,
                    payout_id=payout_id,
                    status=target.value,
                    previous_status=previous,
                ),
                payout=payout,
                partner=partner,
            )

        applied = await self._transaction(transition)
        if applied.result.outcome is TransitionOutcome.SKIPPED:
            self.logger.info(
                f"Payout {payout_id} has a gateway transfer, not moving to {target.value}"
            )
        elif not applied.result.applied:
            self.logger.info(
                f"Payout {payout_id} already {applied.result.status}, "
                f"ignoring {target.value}"
            )
        return applied

    def _validate_amount(self, amount_cents: Any) -> None:
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
            raise InvalidAmount(
                f"Amount must be an integer number of cents, got {amount_cents!r}"
            )
        minimum = self.settings.payout_min_amount_cents
        if amount_cents < minimum:
            raise ValidationError(
                f"Minimum payout amount is ${minimum / 100:.2f}",
                code=ErrorCode.BELOW_MINIMUM,
            )

    @staticmethod
    def _validate_method(method: str) -> PaymentMethod:
        try:
            return PaymentMethod(method)
        except ValueError:
            raise ValidationError(
                f"Unsupported payment method: {method}",
                code=ErrorCode.INVALID_METHOD,
            ) from None

    async def _dispatch_transfer(self, payout_id: str) -> None:
        try:
            await self.transfer_dispatcher.dispatch(payout_id)
        except Exception as e:
            # Payout stays PROCESSING; the stale payout monitor fails it
            self.logger.error(
                f"Failed to dispatch transfer for payout {payout_id}",
                extra={"error": str(e)},
            )

    def _notify(
        self,
        partner: Partner | None,
        breakdown: FeeBreakdown,
        notice: NoticeType,
        extra: dict[str, Any],
    ) -> None:
        if partner is None:
            self.logger.warning(
                f"No partner for payout {extra.get('payout_id')}, "
                f"skipping {notice.value} notice"
            )
            return
        self.background.spawn(
            self._deliver_notice(partner, breakdown, notice, extra),
            name=f"payout-notice-{notice.value}-{extra.get('payout_id')}",
        )

    async def _deliver_notice(
        self,
        partner: Partner,
        breakdown: FeeBreakdown,
        notice: NoticeType,
        extra: dict[str, Any],
    ) -> None:
        try:
            await asyncio.wait_for(
                self.notifier.send_payout_notice(
                    partner, breakdown, notice.value, extra
                ),
                timeout=self.settings.notification_timeout,
            )
        except TimeoutError:
            self.logger.warning(
                f"Payout notice '{notice.value}' timed out for partner {partner.id}"
            )
        except Exception as e:
            self.logger.error(
                f"Failed to send payout notice '{notice.value}' "
                f"to partner {partner.id}",
                extra={"payout_id": extra.get("payout_id"), "error": str(e)},
            )
