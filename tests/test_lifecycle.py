"""Tests for the quote approval state machine and lifecycle controller."""

from __future__ import annotations

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from src.db import queries
from src.errors import InvalidTransitionError, QuoteNotFoundError
from src.models import Quote
from src.models.enums import QuoteStatus
from src.pricing.kinds import ServiceKind
from src.quotes.lifecycle import QuoteLifecycle
from src.quotes.states import (
    APPROVE,
    CANCEL_APPROVAL,
    REJECT,
    SUBMIT,
    TRANSITIONS,
    can_transition,
    sources_for,
    target_for,
    valid_triggers,
)
from src.quotes.sync import LineItemSynchronizer
from src.schemas.events import EventType
from tests.factories import (
    get_items,
    get_quote_row,
    make_price,
    make_quote,
    make_service,
    make_user,
)


@pytest.fixture()
def lifecycle() -> QuoteLifecycle:
    return QuoteLifecycle()


# ── State table ──────────────────────────────────────────────────────


class TestStates:
    def test_all_statuses_have_entries(self):
        assert set(TRANSITIONS) == set(QuoteStatus)

    def test_rejected_is_terminal(self):
        assert valid_triggers(QuoteStatus.REJECTED) == []

    def test_approve_sources(self):
        assert sources_for(APPROVE) == {QuoteStatus.DRAFT, QuoteStatus.PENDING}

    def test_cancel_only_from_approved(self):
        assert sources_for(CANCEL_APPROVAL) == {QuoteStatus.APPROVED}
        assert target_for(CANCEL_APPROVAL) is QuoteStatus.DRAFT

    def test_targets(self):
        assert target_for(SUBMIT) is QuoteStatus.PENDING
        assert target_for(APPROVE) is QuoteStatus.APPROVED
        assert target_for(REJECT) is QuoteStatus.REJECTED

    def test_unknown_trigger(self):
        with pytest.raises(ValueError, match="Unknown lifecycle trigger"):
            target_for("archive")

    def test_can_transition_accepts_raw_strings(self):
        assert can_transition("pending", APPROVE)
        assert not can_transition("approved", APPROVE)
        assert not can_transition("bogus", APPROVE)

    def test_valid_triggers_unknown_status(self):
        assert valid_triggers("bogus") == []


class TestQuoteColumns:
    def test_approval_and_rejection_notes_are_separate(self):
        columns = Quote.__table__.c
        assert "cancellation_reason" in columns
        assert "manager_note" in columns
        assert "confirmed_at" not in columns


# ── approve ──────────────────────────────────────────────────────────


class TestApprove:
    @pytest.mark.asyncio()
    @pytest.mark.parametrize("start", [QuoteStatus.DRAFT, QuoteStatus.PENDING])
    async def test_approve_from_open_states(self, db, lifecycle, start):
        quote = await make_quote(db, await make_user(db), status=start)
        quote_id = quote.id

        result = await lifecycle.approve(db, quote_id, "mgr1")

        assert result.previous_status == start.value
        assert result.new_status == "approved"
        assert result.actor_id == "mgr1"
        stored = await get_quote_row(db, quote_id)
        assert stored.status == "approved"
        assert stored.approved_by == "mgr1"
        assert stored.approved_at is not None

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("start", [QuoteStatus.APPROVED, QuoteStatus.REJECTED])
    async def test_approve_from_closed_states_fails(self, db, lifecycle, start):
        quote = await make_quote(db, await make_user(db), status=start)
        quote_id = quote.id

        with pytest.raises(InvalidTransitionError) as exc_info:
            await lifecycle.approve(db, quote_id, "mgr1")

        assert exc_info.value.current_status == start.value
        assert exc_info.value.code == "invalid_transition"
        stored = await get_quote_row(db, quote_id)
        assert stored.status == start.value
        assert stored.approved_by is None

    @pytest.mark.asyncio()
    async def test_second_approve_fails_and_keeps_first_approver(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id

        await lifecycle.approve(db, quote_id, "mgr1")
        with pytest.raises(InvalidTransitionError):
            await lifecycle.approve(db, quote_id, "mgr2")

        assert (await get_quote_row(db, quote_id)).approved_by == "mgr1"

    @pytest.mark.asyncio()
    async def test_unknown_quote(self, db, lifecycle):
        with pytest.raises(QuoteNotFoundError):
            await lifecycle.approve(db, uuid.uuid4(), "mgr1")

    @pytest.mark.asyncio()
    async def test_lost_race_reports_latest_status(self, db, lifecycle):
        """Status read says pending, but the conditional update matches nothing."""
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id

        with patch.object(
            queries, "update_quote_if_status", AsyncMock(return_value=0)
        ), patch.object(
            queries, "get_quote_status", AsyncMock(side_effect=["pending", "rejected"])
        ):
            with pytest.raises(InvalidTransitionError) as exc_info:
                await lifecycle.approve(db, quote_id, "mgr1")

        assert exc_info.value.current_status == "rejected"

    @pytest.mark.asyncio()
    async def test_lost_race_to_deletion(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id

        with patch.object(
            queries, "update_quote_if_status", AsyncMock(return_value=0)
        ), patch.object(
            queries, "get_quote_status", AsyncMock(side_effect=["pending", None])
        ):
            with pytest.raises(QuoteNotFoundError):
                await lifecycle.approve(db, quote_id, "mgr1")

    @pytest.mark.asyncio()
    async def test_emits_approved_event(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id

        with patch("src.quotes.lifecycle.emit", new_callable=AsyncMock) as mock_emit:
            await lifecycle.approve(db, quote_id, "mgr1")

        event = mock_emit.call_args.args[0]
        assert event.event_type == EventType.QUOTE_APPROVED
        assert event.actor_id == "mgr1"
        assert event.data == {"from_status": "pending", "to_status": "approved"}

    @pytest.mark.asyncio()
    async def test_failed_transition_emits_nothing(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.REJECTED)
        quote_id = quote.id

        with patch("src.quotes.lifecycle.emit", new_callable=AsyncMock) as mock_emit:
            with pytest.raises(InvalidTransitionError):
                await lifecycle.approve(db, quote_id, "mgr1")

        mock_emit.assert_not_awaited()


# ── cancel_approval ──────────────────────────────────────────────────


class TestCancelApproval:
    @pytest.mark.asyncio()
    async def test_approve_then_cancel(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id

        await lifecycle.approve(db, quote_id, "mgr1")
        result = await lifecycle.cancel_approval(db, quote_id, "mgr1", reason="customer changed dates")

        assert result.previous_status == "approved"
        assert result.new_status == "draft"
        stored = await get_quote_row(db, quote_id)
        assert stored.status == "draft"
        assert stored.cancellation_reason == "customer changed dates"
        assert stored.approved_by == "mgr1"

    @pytest.mark.asyncio()
    async def test_cancel_without_reason(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.APPROVED)
        quote_id = quote.id

        await lifecycle.cancel_approval(db, quote_id, "mgr2")

        stored = await get_quote_row(db, quote_id)
        assert stored.status == "draft"
        assert stored.cancellation_reason is None

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("start", [QuoteStatus.DRAFT, QuoteStatus.PENDING, QuoteStatus.REJECTED])
    async def test_cancel_requires_approved(self, db, lifecycle, start):
        quote = await make_quote(db, await make_user(db), status=start)
        quote_id = quote.id

        with pytest.raises(InvalidTransitionError):
            await lifecycle.cancel_approval(db, quote_id, "mgr1", reason="oops")

        stored = await get_quote_row(db, quote_id)
        assert stored.status == start.value
        assert stored.cancellation_reason is None

    @pytest.mark.asyncio()
    async def test_reapprove_after_cancel(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id

        await lifecycle.approve(db, quote_id, "mgr1")
        await lifecycle.cancel_approval(db, quote_id, "mgr1", reason="repricing")
        await lifecycle.approve(db, quote_id, "mgr2")

        stored = await get_quote_row(db, quote_id)
        assert stored.status == "approved"
        assert stored.approved_by == "mgr2"

    @pytest.mark.asyncio()
    async def test_transitions_leave_line_items_alone(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id
        await make_price(db, ServiceKind.CABIN, "C1", "500")
        cabin_id = await make_service(db, ServiceKind.CABIN, "C1")
        await LineItemSynchronizer().sync_one(db, quote_id, ServiceKind.CABIN, cabin_id, "C1", 2)

        await lifecycle.approve(db, quote_id, "mgr1")
        await lifecycle.cancel_approval(db, quote_id, "mgr1")

        items = await get_items(db, quote_id)
        assert len(items) == 1
        assert items[0].total_price == Decimal("1000")
        assert (await get_quote_row(db, quote_id)).total_price == Decimal("1000")


# ── submit / reject ──────────────────────────────────────────────────


class TestSubmitAndReject:
    @pytest.mark.asyncio()
    async def test_submit_draft(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db))
        quote_id = quote.id

        result = await lifecycle.submit(db, quote_id, "agent7")

        assert result.new_status == "pending"
        assert (await get_quote_row(db, quote_id)).status == "pending"

    @pytest.mark.asyncio()
    async def test_submit_twice_fails(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db))
        quote_id = quote.id

        await lifecycle.submit(db, quote_id, "agent7")
        with pytest.raises(InvalidTransitionError):
            await lifecycle.submit(db, quote_id, "agent7")

    @pytest.mark.asyncio()
    async def test_reject_pending_with_note(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id

        result = await lifecycle.reject(db, quote_id, "mgr1", note="sold out")

        assert result.new_status == "rejected"
        stored = await get_quote_row(db, quote_id)
        assert stored.status == "rejected"
        assert stored.manager_note == "sold out"
        assert stored.cancellation_reason is None

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("note", [None, "budget exceeded"])
    async def test_reject_keeps_cancellation_reason(self, db, lifecycle, note):
        """Rejecting after a reversed approval leaves that reversal's reason intact."""
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.PENDING)
        quote_id = quote.id

        await lifecycle.approve(db, quote_id, "mgr1")
        await lifecycle.cancel_approval(db, quote_id, "mgr1", reason="customer requested changes")
        await lifecycle.reject(db, quote_id, "mgr2", note=note)

        stored = await get_quote_row(db, quote_id)
        assert stored.status == "rejected"
        assert stored.cancellation_reason == "customer requested changes"
        assert stored.manager_note == note
        assert stored.approved_by == "mgr1"

    @pytest.mark.asyncio()
    async def test_rejected_is_final(self, db, lifecycle):
        quote = await make_quote(db, await make_user(db), status=QuoteStatus.REJECTED)
        quote_id = quote.id

        for call in (lifecycle.submit, lifecycle.approve, lifecycle.reject, lifecycle.cancel_approval):
            with pytest.raises(InvalidTransitionError):
                await call(db, quote_id, "mgr1")
