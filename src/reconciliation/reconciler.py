"""Reservation/payment reconciler: derived "paid" view over quotes.

A quote counts as paid when its own payment_status is "paid" OR any of its
reservations has a completed payment; payment state is recorded in either
place depending on how it was taken. Quotes without reservations are left
out of the view entirely.

Read-only: the derived flag is recomputed on every call and never written
back. Reservations, payments and owners are fetched by id set, so a call
costs a fixed number of queries per batch regardless of quote count. If any
fetch fails the whole call fails; a partial join would mislabel quotes as
unpaid.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Collection

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.db import queries
from src.errors import InvalidInputError
from src.models import Quote, Reservation, User
from src.models.enums import QuotePaymentStatus, ReconcileFilter, ReservationStatus
from src.schemas.quotes import OwnerInfo, QuoteSummary, ReservationSummary

logger = logging.getLogger(__name__)


def _parse_filter(value: ReconcileFilter | str) -> ReconcileFilter:
    try:
        return ReconcileFilter(value)
    except ValueError:
        valid = ", ".join(f.value for f in ReconcileFilter)
        msg = f"Unknown reconciliation filter: {value!r} (valid: {valid})"
        raise InvalidInputError(msg) from None


class Reconciler:
    """Builds the quote/reservation/payment confirmation view."""

    def __init__(self, batch_size: int | None = None) -> None:
        self.batch_size = batch_size or settings.reconcile.reconcile_batch_size

    async def reconcile(
        self,
        db: AsyncSession,
        filter: ReconcileFilter | str = ReconcileFilter.ALL,  # noqa: A002
        search: str | None = None,
        quote_ids: Collection[uuid.UUID] | None = None,
    ) -> list[QuoteSummary]:
        """Classify quotes as paid/pending from their reservations and payments.

        Args:
            db: Database session.
            filter: "paid", "pending" or "all".
            search: Optional case-insensitive match on title, owner name or email.
            quote_ids: Optional restriction of the candidate quotes.

        Returns:
            One summary per quote that has at least one reservation and
            passes the filter, most recent quote first.
        """
        wanted = _parse_filter(filter)

        # 1) Candidate quotes
        quotes = await queries.get_quotes(db, quote_ids)
        if not quotes:
            return []

        # 2) Reservations grouped by quote; quotes without any are dropped
        reservations = await queries.get_reservations_for_quotes(
            db, [q.id for q in quotes], self.batch_size
        )
        by_quote: dict[uuid.UUID, list[Reservation]] = {}
        quote_of_reservation: dict[uuid.UUID, uuid.UUID] = {}
        for reservation in reservations:
            if reservation.quote_id is None:
                continue
            by_quote.setdefault(reservation.quote_id, []).append(reservation)
            quote_of_reservation[reservation.id] = reservation.quote_id

        # 3) Quotes with at least one completed payment, traced payment → reservation → quote
        paid_by_payment: set[uuid.UUID] = set()
        if quote_of_reservation:
            payments = await queries.get_completed_payments(
                db, list(quote_of_reservation), self.batch_size
            )
            for payment in payments:
                quote_id = quote_of_reservation.get(payment.reservation_id)
                if quote_id is not None:
                    paid_by_payment.add(quote_id)

        # 4) Classification
        selected = [
            q for q in quotes
            if q.id in by_quote and self._matches(q, wanted, paid_by_payment)
        ]

        # 5) Owner details
        owner_ids = list(dict.fromkeys(q.owner_id for q in selected if q.owner_id is not None))
        owners = await queries.get_users_by_ids(db, owner_ids, self.batch_size) if owner_ids else {}

        summaries = [
            self._summarize(q, by_quote[q.id], owners.get(q.owner_id), q.id in paid_by_payment)
            for q in selected
        ]
        if search:
            summaries = [s for s in summaries if self._matches_search(s, search)]

        logger.info(
            "Reconciled %d quotes (filter=%s): %d with reservations, %d paid by payment, %d returned",
            len(quotes),
            wanted.value,
            len(by_quote),
            len(paid_by_payment),
            len(summaries),
        )
        return summaries

    @staticmethod
    def is_paid(quote: Quote, paid_by_payment: Collection[uuid.UUID]) -> bool:
        return quote.payment_status == QuotePaymentStatus.PAID.value or quote.id in paid_by_payment

    @classmethod
    def _matches(cls, quote: Quote, wanted: ReconcileFilter, paid_by_payment: set[uuid.UUID]) -> bool:
        if wanted is ReconcileFilter.PAID:
            return cls.is_paid(quote, paid_by_payment)
        if wanted is ReconcileFilter.PENDING:
            own = quote.payment_status or QuotePaymentStatus.PENDING.value
            return own == QuotePaymentStatus.PENDING.value and quote.id not in paid_by_payment
        return True

    @staticmethod
    def _summarize(
        quote: Quote,
        reservations: list[Reservation],
        owner: User | None,
        paid_by_payment: bool,
    ) -> QuoteSummary:
        if paid_by_payment:
            payment_status = QuotePaymentStatus.PAID.value
        else:
            payment_status = quote.payment_status or QuotePaymentStatus.PENDING.value

        return QuoteSummary(
            quote_id=quote.id,
            title=quote.title,
            owner=OwnerInfo(
                id=quote.owner_id,
                name=owner.name if owner else None,
                email=owner.email if owner else None,
                phone=owner.phone if owner else None,
            ),
            total_price=quote.total_price,
            payment_status=payment_status,
            status=quote.status,
            created_at=quote.created_at,
            reservation_count=len(reservations),
            has_active_reservation=any(
                r.status != ReservationStatus.CANCELLED.value for r in reservations
            ),
            reservations=[
                ReservationSummary(id=r.id, reservation_type=r.reservation_type, status=r.status)
                for r in reservations
            ],
        )

    @staticmethod
    def _matches_search(summary: QuoteSummary, search: str) -> bool:
        term = search.strip().lower()
        if not term:
            return True
        haystack = (summary.title, summary.owner.name, summary.owner.email)
        return any(term in value.lower() for value in haystack if value)


reconciler = Reconciler()
