"""Tests for the reservation/payment reconciler.

Covers:
- Paid = own payment_status "paid" OR a completed reservation payment
- Quotes without reservations never appear
- pending / all filters, search, owner enrichment
- Batched id fetches
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from src.errors import InvalidInputError
from src.models.enums import PaymentStatus, QuotePaymentStatus, ReconcileFilter, ReservationStatus
from src.pricing.kinds import ServiceKind
from src.reconciliation.reconciler import Reconciler
from tests.factories import make_payment, make_quote, make_reservation, make_user


@pytest.fixture()
def rec() -> Reconciler:
    return Reconciler(batch_size=2)


async def _three_quotes(db):
    """A: pending, reserved, unpaid. B: pending, reserved, paid by payment. C: paid, no reservation."""
    owner = await make_user(db)
    a = await make_quote(db, owner, title="A")
    b = await make_quote(db, owner, title="B")
    c = await make_quote(db, owner, title="C", payment_status=QuotePaymentStatus.PAID.value)
    await make_reservation(db, a)
    res_b = await make_reservation(db, b)
    await make_payment(db, res_b, PaymentStatus.COMPLETED)
    return a, b, c


# ── Filters ──────────────────────────────────────────────────────────


class TestFilters:
    @pytest.mark.asyncio()
    async def test_paid_filter(self, db, rec):
        _, b, _ = await _three_quotes(db)

        result = await rec.reconcile(db, "paid")

        assert [s.quote_id for s in result] == [b.id]
        assert result[0].payment_status == "paid"

    @pytest.mark.asyncio()
    async def test_pending_filter(self, db, rec):
        a, _, _ = await _three_quotes(db)

        result = await rec.reconcile(db, ReconcileFilter.PENDING)

        assert [s.quote_id for s in result] == [a.id]
        assert result[0].payment_status == "pending"

    @pytest.mark.asyncio()
    async def test_all_filter_drops_quotes_without_reservations(self, db, rec):
        a, b, c = await _three_quotes(db)

        result = await rec.reconcile(db)

        assert {s.quote_id for s in result} == {a.id, b.id}
        assert c.id not in {s.quote_id for s in result}

    @pytest.mark.asyncio()
    async def test_own_paid_status_counts_as_paid(self, db, rec):
        owner = await make_user(db)
        quote = await make_quote(db, owner, payment_status=QuotePaymentStatus.PAID.value)
        await make_reservation(db, quote)

        paid = await rec.reconcile(db, "paid")
        pending = await rec.reconcile(db, "pending")

        assert [s.quote_id for s in paid] == [quote.id]
        assert pending == []

    @pytest.mark.asyncio()
    async def test_failed_and_pending_payments_do_not_count(self, db, rec):
        owner = await make_user(db)
        quote = await make_quote(db, owner)
        reservation = await make_reservation(db, quote)
        await make_payment(db, reservation, PaymentStatus.FAILED)
        await make_payment(db, reservation, PaymentStatus.PENDING)

        assert await rec.reconcile(db, "paid") == []
        assert [s.quote_id for s in await rec.reconcile(db, "pending")] == [quote.id]

    @pytest.mark.asyncio()
    async def test_null_payment_status_is_pending(self, db, rec):
        owner = await make_user(db)
        quote = await make_quote(db, owner, payment_status=None)
        await make_reservation(db, quote)

        result = await rec.reconcile(db, "pending")

        assert [s.quote_id for s in result] == [quote.id]
        assert result[0].payment_status == "pending"

    @pytest.mark.asyncio()
    async def test_paid_and_pending_partition_all(self, db, rec):
        await _three_quotes(db)
        owner = await make_user(db, name="Le Van An")
        d = await make_quote(db, owner, title="D", payment_status=QuotePaymentStatus.PAID.value)
        await make_reservation(db, d, ReservationStatus.CANCELLED)

        every = {s.quote_id for s in await rec.reconcile(db, "all")}
        paid = {s.quote_id for s in await rec.reconcile(db, "paid")}
        pending = {s.quote_id for s in await rec.reconcile(db, "pending")}

        assert paid | pending == every
        assert paid & pending == set()

    @pytest.mark.asyncio()
    async def test_unknown_filter(self, db, rec):
        with pytest.raises(InvalidInputError, match="Unknown reconciliation filter"):
            await rec.reconcile(db, "overdue")

    @pytest.mark.asyncio()
    async def test_empty_database(self, db, rec):
        assert await rec.reconcile(db) == []

    @pytest.mark.asyncio()
    async def test_read_only(self, db, rec):
        """The derived paid flag is never written back to the quote."""
        _, b, _ = await _three_quotes(db)

        await rec.reconcile(db, "paid")
        await db.refresh(b)

        assert b.payment_status == "pending"


# ── Summaries ────────────────────────────────────────────────────────


class TestSummaries:
    @pytest.mark.asyncio()
    async def test_owner_details_attached(self, db, rec):
        owner = await make_user(db, name="Tran Thi Mai", email="mai@example.com", phone="090-555-0101")
        quote = await make_quote(db, owner)
        await make_reservation(db, quote)

        [summary] = await rec.reconcile(db)

        assert summary.owner.id == owner.id
        assert summary.owner.name == "Tran Thi Mai"
        assert summary.owner.email == "mai@example.com"
        assert summary.owner.phone == "090-555-0101"
        assert summary.total_price == Decimal("0")
        assert summary.status == "draft"

    @pytest.mark.asyncio()
    async def test_reservation_counts(self, db, rec):
        owner = await make_user(db)
        quote = await make_quote(db, owner)
        await make_reservation(db, quote, ReservationStatus.CANCELLED)
        await make_reservation(db, quote, ReservationStatus.CONFIRMED, ServiceKind.HOTEL)

        [summary] = await rec.reconcile(db)

        assert summary.reservation_count == 2
        assert summary.has_active_reservation is True
        assert {r.reservation_type for r in summary.reservations} == {"cabin", "hotel"}

    @pytest.mark.asyncio()
    async def test_only_cancelled_reservations(self, db, rec):
        owner = await make_user(db)
        quote = await make_quote(db, owner)
        await make_reservation(db, quote, ReservationStatus.CANCELLED)

        [summary] = await rec.reconcile(db)

        assert summary.reservation_count == 1
        assert summary.has_active_reservation is False

    @pytest.mark.asyncio()
    async def test_payment_on_any_reservation_marks_quote_paid(self, db, rec):
        owner = await make_user(db)
        quote = await make_quote(db, owner)
        await make_reservation(db, quote)
        second = await make_reservation(db, quote, reservation_type=ServiceKind.TOUR)
        await make_payment(db, second, PaymentStatus.COMPLETED, amount="250")

        [summary] = await rec.reconcile(db, "paid")

        assert summary.quote_id == quote.id


# ── Search and scoping ───────────────────────────────────────────────


class TestSearchAndScope:
    @pytest.mark.asyncio()
    async def test_search_by_title_case_insensitive(self, db, rec):
        owner = await make_user(db)
        sapa = await make_quote(db, owner, title="Sapa trekking")
        halong = await make_quote(db, owner, title="Halong Bay cruise")
        await make_reservation(db, sapa)
        await make_reservation(db, halong)

        result = await rec.reconcile(db, search="HALONG")

        assert [s.quote_id for s in result] == [halong.id]

    @pytest.mark.asyncio()
    async def test_search_by_owner(self, db, rec):
        kim = await make_user(db, name="Kim Minji", email="minji@example.com")
        park = await make_user(db, name="Park Jisoo", email="jisoo@example.com")
        q_kim = await make_quote(db, kim)
        q_park = await make_quote(db, park)
        await make_reservation(db, q_kim)
        await make_reservation(db, q_park)

        by_name = await rec.reconcile(db, search="park")
        by_email = await rec.reconcile(db, search="minji@")

        assert [s.quote_id for s in by_name] == [q_park.id]
        assert [s.quote_id for s in by_email] == [q_kim.id]

    @pytest.mark.asyncio()
    async def test_blank_search_matches_everything(self, db, rec):
        a, b, _ = await _three_quotes(db)

        result = await rec.reconcile(db, search="   ")

        assert {s.quote_id for s in result} == {a.id, b.id}

    @pytest.mark.asyncio()
    async def test_restrict_to_quote_ids(self, db, rec):
        a, b, _ = await _three_quotes(db)

        result = await rec.reconcile(db, quote_ids=[b.id])

        assert [s.quote_id for s in result] == [b.id]
        assert await rec.reconcile(db, quote_ids=[]) == []


# ── Batching ─────────────────────────────────────────────────────────


class TestBatching:
    @pytest.mark.asyncio()
    async def test_many_quotes_across_batches(self, db):
        owner = await make_user(db)
        paid_ids = set()
        for i in range(7):
            quote = await make_quote(db, owner, title=f"Q{i}")
            reservation = await make_reservation(db, quote)
            if i % 2 == 0:
                await make_payment(db, reservation, PaymentStatus.COMPLETED)
                paid_ids.add(quote.id)

        small = await Reconciler(batch_size=1).reconcile(db, "paid")
        large = await Reconciler(batch_size=500).reconcile(db, "paid")

        assert {s.quote_id for s in small} == paid_ids
        assert {s.quote_id for s in large} == paid_ids

    def test_default_batch_size_from_settings(self):
        from src.config import settings

        assert Reconciler().batch_size == settings.reconcile.reconcile_batch_size
