"""Integration tests for the payout lifecycle.

Runs the engine with its in-process transfer dispatcher and the simulated
gateway, so a requested payout is transferred in the background and then
confirmed by the gateway webhook or its payout events.
"""

import pytest

from settlement.models.enums import PayoutStatus
from settlement.services.payout.results import TransitionOutcome
from settlement.utils.exceptions import (
    ErrorCode,
    InvalidStateTransition,
    PersistenceError,
    RateLimitExceeded,
    ValidationError,
)


pytestmark = pytest.mark.integration


@pytest.fixture
def flow_engine(make_engine):
    """Engine with in-process transfers."""
    return make_engine()


class TestPayoutLifecycle:
    """Request, transfer and confirm."""

    @pytest.mark.asyncio
    async def test_gateway_payout_completes(self, flow_engine, store, notifier):
        summary = await flow_engine.request_payout("partner-1", 10000)
        await flow_engine.drain()

        payout = store.payouts[summary.id]
        assert payout.status == PayoutStatus.PROCESSING.value
        assert payout.external_transaction_id.startswith("mock_tr_")

        result = await flow_engine.complete_payout(
            summary.id, payout.external_transaction_id
        )
        await flow_engine.drain()

        assert result.applied is True
        assert payout.status == PayoutStatus.COMPLETED.value

        stats = await flow_engine.get_partner_payout_stats("partner-1")
        assert stats.total_paid == 9875
        assert stats.payout_count == 1
        assert stats.last_payout_date == payout.completed_at

        statuses = [call.args[2] for call in notifier.send_payout_notice.await_args_list]
        assert statuses == ["processing", "completed"]

    @pytest.mark.asyncio
    async def test_duplicate_webhook(self, flow_engine, store, notifier):
        summary = await flow_engine.request_payout("partner-1", 10000)
        await flow_engine.drain()
        transfer_id = store.payouts[summary.id].external_transaction_id

        await flow_engine.complete_payout(summary.id, transfer_id)
        completed_at = store.payouts[summary.id].completed_at
        duplicate = await flow_engine.complete_payout(summary.id, transfer_id)
        late_failure = await flow_engine.fail_payout(summary.id, "late webhook")
        await flow_engine.drain()

        assert duplicate.outcome is TransitionOutcome.ALREADY_TERMINAL
        assert late_failure.outcome is TransitionOutcome.ALREADY_TERMINAL
        assert store.payouts[summary.id].completed_at == completed_at
        assert store.payouts[summary.id].status == PayoutStatus.COMPLETED.value
        assert notifier.send_payout_notice.await_count == 2

    @pytest.mark.asyncio
    async def test_gateway_failure_webhook(self, flow_engine, store):
        summary = await flow_engine.request_payout("partner-1", 10000)
        await flow_engine.drain()

        await flow_engine.fail_payout(summary.id, "Bank rejected transfer")

        payout = store.payouts[summary.id]
        assert payout.status == PayoutStatus.FAILED.value
        assert payout.external_transaction_id is None
        assert payout.gateway_transfer_id.startswith("mock_tr_")
        stats = await flow_engine.get_partner_payout_stats("partner-1")
        assert stats.total_paid == 0

    @pytest.mark.asyncio
    async def test_bank_payout_paid_event(self, flow_engine, store, notifier):
        summary = await flow_engine.request_payout("partner-1", 10000)
        await flow_engine.drain()
        payout = store.payouts[summary.id]
        assert payout.gateway_payout_id.startswith("mock_po_")

        result = await flow_engine.handle_gateway_event(
            "payout.paid", {"id": payout.gateway_payout_id}
        )
        await flow_engine.drain()

        assert result.applied is True
        assert payout.status == PayoutStatus.COMPLETED.value
        assert payout.external_transaction_id == payout.gateway_transfer_id
        statuses = [call.args[2] for call in notifier.send_payout_notice.await_args_list]
        assert statuses == ["processing", "completed"]

    @pytest.mark.asyncio
    async def test_manual_payout_approval(self, flow_engine, store):
        summary = await flow_engine.request_payout("partner-1", 5000, method="manual")

        with pytest.raises(InvalidStateTransition):
            await flow_engine.complete_payout(summary.id, "bank-ref-1")

        await flow_engine.approve_payout(summary.id)
        await flow_engine.drain()
        await flow_engine.complete_payout(summary.id, "bank-ref-1")

        payout = store.payouts[summary.id]
        assert payout.status == PayoutStatus.COMPLETED.value
        assert payout.external_transaction_id == "bank-ref-1"

    @pytest.mark.asyncio
    async def test_history(self, flow_engine):
        first = await flow_engine.request_payout("partner-1", 2000)
        second = await flow_engine.request_payout("partner-1", 3000, method="manual")
        await flow_engine.drain()

        history = await flow_engine.get_partner_payouts("partner-1")
        pending = await flow_engine.get_partner_payouts("partner-1", status="PENDING")

        assert {p.id for p in history} == {first.id, second.id}
        assert [p.id for p in pending] == [second.id]


class TestPayoutRejections:
    """Requests that never produce a payout."""

    @pytest.mark.asyncio
    async def test_below_minimum(self, flow_engine, store):
        with pytest.raises(ValidationError) as exc_info:
            await flow_engine.request_payout("partner-1", 500)

        assert exc_info.value.code == ErrorCode.BELOW_MINIMUM
        assert store.payouts == {}

    @pytest.mark.asyncio
    async def test_sixth_request_in_a_day(self, flow_engine, store, fake_clock):
        for _ in range(5):
            await flow_engine.request_payout("partner-1", 2000)

        with pytest.raises(RateLimitExceeded):
            await flow_engine.request_payout("partner-1", 2000)

        fake_clock.advance(24 * 60 * 60)
        await flow_engine.request_payout("partner-1", 2000)
        await flow_engine.drain()

        assert len(store.payouts) == 6

    @pytest.mark.asyncio
    async def test_contention_leaves_no_record(self, flow_engine, store):
        store.fail_creates = 3

        with pytest.raises(PersistenceError):
            await flow_engine.request_payout("partner-1", 5000)

        assert await flow_engine.get_partner_payouts("partner-1") == []
