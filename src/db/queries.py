"""Typed data-access functions shared by the synchronizer, lifecycle controller and reconciler.

Every function takes the caller's AsyncSession and neither commits nor
rolls back; units of work belong to the services. Multi-row reads take id
sets and are chunked so IN (...) clauses stay bounded.
"""

from __future__ import annotations

import uuid
from collections.abc import Collection, Iterator, Sequence
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy import Row, Table, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import Base, Quote, QuoteItem, Reservation, ReservationPayment, User
from src.models.enums import PaymentStatus
from src.pricing.kinds import ServiceKind

T = TypeVar("T")


def _chunks(ids: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


def _table(name: str) -> Table:
    return Base.metadata.tables[name]


# ── Price catalog ────────────────────────────────────────────────────


async def lookup_price(db: AsyncSession, table: str, key_column: str, key_value: str) -> Decimal | None:
    """Return the stored price for one code, or None when no row matches."""
    tbl = _table(table)
    result = await db.execute(select(tbl.c.price).where(tbl.c[key_column] == key_value))
    return result.scalar_one_or_none()


# ── Service records ──────────────────────────────────────────────────


async def get_service_record(
    db: AsyncSession, kind: ServiceKind, service_id: uuid.UUID
) -> Row[Any] | None:
    """Return (id, price_code, base_price) for a service record, or None."""
    tbl = _table(kind.service_table)
    result = await db.execute(
        select(
            tbl.c.id,
            tbl.c[kind.code_column].label("price_code"),
            tbl.c.base_price,
        ).where(tbl.c.id == service_id)
    )
    return result.first()


async def set_service_price(
    db: AsyncSession, kind: ServiceKind, service_id: uuid.UUID, price_code: str, price: Decimal
) -> int:
    """Write the price code and its resolved base price onto a service record.

    Both columns are written together so the cached price always belongs to
    the stored code. Returns rows updated.
    """
    tbl = _table(kind.service_table)
    result = await db.execute(
        update(tbl)
        .where(tbl.c.id == service_id)
        .values({kind.code_column: price_code, "base_price": price})
    )
    return result.rowcount


# ── Quotes and line items ────────────────────────────────────────────


async def get_quote(db: AsyncSession, quote_id: uuid.UUID) -> Quote | None:
    result = await db.execute(select(Quote).where(Quote.id == quote_id))
    return result.scalar_one_or_none()


async def get_quote_status(db: AsyncSession, quote_id: uuid.UUID) -> str | None:
    """Fresh read of a quote's status, bypassing any loaded instance."""
    result = await db.execute(select(Quote.status).where(Quote.id == quote_id))
    return result.scalar_one_or_none()


async def update_quote_if_status(
    db: AsyncSession,
    quote_id: uuid.UUID,
    allowed_statuses: Collection[str],
    values: dict[str, Any],
) -> int:
    """Conditionally update one quote row (compare-and-set on status).

    Returns the number of rows updated: 0 when the quote is missing or its
    status is not in ``allowed_statuses``.
    """
    result = await db.execute(
        update(Quote)
        .where(Quote.id == quote_id, Quote.status.in_(list(allowed_statuses)))
        .values(**values)
    )
    return result.rowcount


async def get_quote_item(
    db: AsyncSession, quote_id: uuid.UUID, kind: ServiceKind, service_id: uuid.UUID
) -> QuoteItem | None:
    result = await db.execute(
        select(QuoteItem).where(
            QuoteItem.quote_id == quote_id,
            QuoteItem.service_kind == kind.value,
            QuoteItem.service_id == service_id,
        )
    )
    return result.scalar_one_or_none()


async def upsert_quote_item(
    db: AsyncSession,
    quote_id: uuid.UUID,
    kind: ServiceKind,
    service_id: uuid.UUID,
    quantity: int,
    unit_price: Decimal,
) -> QuoteItem:
    """Insert or update the line item keyed by (quote, kind, service)."""
    line_total = unit_price * quantity
    item = await get_quote_item(db, quote_id, kind, service_id)
    if item is None:
        item = QuoteItem(
            quote_id=quote_id,
            service_kind=kind.value,
            service_id=service_id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=line_total,
        )
        db.add(item)
    else:
        item.quantity = quantity
        item.unit_price = unit_price
        item.total_price = line_total
    await db.flush()
    return item


async def list_quote_items(db: AsyncSession, quote_id: uuid.UUID) -> list[QuoteItem]:
    result = await db.execute(
        select(QuoteItem).where(QuoteItem.quote_id == quote_id).order_by(QuoteItem.created_at, QuoteItem.id)
    )
    return list(result.scalars().all())


async def sum_quote_items(db: AsyncSession, quote_id: uuid.UUID) -> Decimal:
    """Sum of total_price over every current line item of a quote."""
    result = await db.execute(
        select(func.coalesce(func.sum(QuoteItem.total_price), 0)).where(QuoteItem.quote_id == quote_id)
    )
    return Decimal(str(result.scalar_one()))


async def set_quote_total(db: AsyncSession, quote_id: uuid.UUID, total: Decimal) -> int:
    result = await db.execute(update(Quote).where(Quote.id == quote_id).values(total_price=total))
    return result.rowcount


# ── Reconciliation reads ─────────────────────────────────────────────


async def get_quotes(db: AsyncSession, quote_ids: Collection[uuid.UUID] | None = None) -> list[Quote]:
    """Candidate quotes, most recent first; optionally restricted to an id set."""
    query = select(Quote).order_by(Quote.created_at.desc(), Quote.id)
    if quote_ids is not None:
        if not quote_ids:
            return []
        query = query.where(Quote.id.in_(list(quote_ids)))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_reservations_for_quotes(
    db: AsyncSession, quote_ids: Sequence[uuid.UUID], batch_size: int
) -> list[Reservation]:
    reservations: list[Reservation] = []
    for chunk in _chunks(quote_ids, batch_size):
        result = await db.execute(
            select(Reservation)
            .where(Reservation.quote_id.in_(list(chunk)))
            .order_by(Reservation.created_at, Reservation.id)
        )
        reservations.extend(result.scalars().all())
    return reservations


async def get_completed_payments(
    db: AsyncSession, reservation_ids: Sequence[uuid.UUID], batch_size: int
) -> list[ReservationPayment]:
    payments: list[ReservationPayment] = []
    for chunk in _chunks(reservation_ids, batch_size):
        result = await db.execute(
            select(ReservationPayment).where(
                ReservationPayment.reservation_id.in_(list(chunk)),
                ReservationPayment.payment_status == PaymentStatus.COMPLETED.value,
            )
        )
        payments.extend(result.scalars().all())
    return payments


async def get_users_by_ids(
    db: AsyncSession, user_ids: Sequence[uuid.UUID], batch_size: int
) -> dict[uuid.UUID, User]:
    users: dict[uuid.UUID, User] = {}
    for chunk in _chunks(user_ids, batch_size):
        result = await db.execute(select(User).where(User.id.in_(list(chunk))))
        for user in result.scalars().all():
            users[user.id] = user
    return users
