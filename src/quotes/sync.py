"""Line-item synchronizer: keeps cached prices and quote totals consistent.

For one (quote, service kind, service record) the synchronizer resolves the
price code, writes the price onto the service record, upserts the matching
line item and recomputes the quote total from all of its line items.

Every call is its own unit of work and is idempotent: the total is always
recomputed from the full set of items, never incremented, so re-running a
call after a partial failure converges on the correct state. Two concurrent
calls on the same quote may race on the total; the next call corrects it.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db import queries
from src.errors import (
    EngineError,
    InvalidInputError,
    NotFoundError,
    PriceNotFoundError,
    QuoteNotFoundError,
    ServiceRecordNotFoundError,
    WriteFailedError,
)
from src.events.bus import emit
from src.pricing.kinds import ServiceKind
from src.pricing.resolver import normalize_price_code, resolve_price
from src.schemas.events import DomainEvent, EventType
from src.schemas.quotes import ItemSyncOutcome, ItemSyncResult, SyncAllResult

logger = logging.getLogger(__name__)


def _validate_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        msg = f"Quantity must be a positive integer, got {quantity!r}"
        raise InvalidInputError(msg)
    return quantity


class LineItemSynchronizer:
    """Synchronizes service-record prices, line items and quote totals."""

    async def sync_one(
        self,
        db: AsyncSession,
        quote_id: uuid.UUID,
        service_kind: ServiceKind | str,
        service_id: uuid.UUID,
        price_code: str,
        quantity: int = 1,
    ) -> ItemSyncResult:
        """Price one service and fold it into its quote.

        Nothing is written unless the quote and service record exist and the
        price code resolves. The service record is repointed to ``price_code``
        along with its base price, so a later sync_all resolves the same code.

        Returns:
            Unit price, line total and the recomputed quote total.

        Raises:
            InvalidInputError: Unknown kind, empty price code or non-positive quantity.
            QuoteNotFoundError / ServiceRecordNotFoundError: Missing target rows.
            PriceNotFoundError: The price code has no entry.
            WriteFailedError: The store rejected a write; the session was rolled back.
        """
        kind = ServiceKind.parse(service_kind)
        code = normalize_price_code(price_code)
        quantity = _validate_quantity(quantity)

        if await queries.get_quote(db, quote_id) is None:
            raise QuoteNotFoundError(quote_id)
        record = await queries.get_service_record(db, kind, service_id)
        if record is None:
            raise ServiceRecordNotFoundError(kind.value, service_id)

        unit_price = await resolve_price(db, kind, code)
        if unit_price is None:
            await emit(DomainEvent(
                event_type=EventType.QUOTE_PRICE_UNRESOLVED,
                quote_id=quote_id,
                data={
                    "service_kind": kind.value,
                    "service_id": str(service_id),
                    "price_code": code,
                },
                source_module="quotes.sync",
            ))
            raise PriceNotFoundError(kind.value, code)

        if record.price_code != code:
            logger.info(
                "Repointing %s %s from price code %s to %s", kind.value, service_id, record.price_code, code
            )

        try:
            await queries.set_service_price(db, kind, service_id, code, unit_price)
            item = await queries.upsert_quote_item(db, quote_id, kind, service_id, quantity, unit_price)
            line_total = item.total_price
            quote_total = await self._write_quote_total(db, quote_id)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception(
                "Write failed syncing %s %s into quote %s", kind.value, service_id, quote_id
            )
            msg = f"Failed to synchronize {kind.value} {service_id} into quote {quote_id}: {exc}"
            raise WriteFailedError(msg) from exc

        logger.info(
            "Synced %s %s into quote %s: %s x %d = %s (quote total %s)",
            kind.value,
            service_id,
            quote_id,
            unit_price,
            quantity,
            line_total,
            quote_total,
        )

        await emit(DomainEvent(
            event_type=EventType.QUOTE_ITEM_SYNCED,
            quote_id=quote_id,
            data={
                "service_kind": kind.value,
                "service_id": str(service_id),
                "price_code": code,
                "unit_price": str(unit_price),
                "quantity": quantity,
                "quote_total": str(quote_total),
            },
            source_module="quotes.sync",
        ))

        return ItemSyncResult(
            quote_id=quote_id,
            service_kind=kind,
            service_id=service_id,
            quantity=quantity,
            unit_price=unit_price,
            line_total=line_total,
            quote_total=quote_total,
        )

    async def sync_all(self, db: AsyncSession, quote_id: uuid.UUID) -> SyncAllResult:
        """Re-resolve every line item of a quote from its service record's price code.

        Items are processed independently; a failure is recorded in the
        item's outcome and never undoes another item. The quote total is
        recomputed once more at the end so it matches the items as stored.
        """
        if await queries.get_quote(db, quote_id) is None:
            raise QuoteNotFoundError(quote_id)

        items = await queries.list_quote_items(db, quote_id)
        # Snapshot plain values; a rollback below would expire the ORM rows.
        targets = [(item.service_kind, item.service_id, item.quantity) for item in items]

        outcomes: list[ItemSyncOutcome] = []
        for raw_kind, service_id, quantity in targets:
            outcomes.append(await self._resync_item(db, quote_id, raw_kind, service_id, quantity))

        try:
            quote_total = await self._write_quote_total(db, quote_id)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Write failed recomputing total for quote %s", quote_id)
            msg = f"Failed to recompute total for quote {quote_id}: {exc}"
            raise WriteFailedError(msg) from exc

        result = SyncAllResult(quote_id=quote_id, items=outcomes, quote_total=quote_total)
        log = logger.info if result.fully_synced else logger.warning
        log(
            "Resynced quote %s: %d/%d items updated, total %s",
            quote_id,
            result.updated,
            len(outcomes),
            quote_total,
        )

        await emit(DomainEvent(
            event_type=EventType.QUOTE_RESYNCED,
            quote_id=quote_id,
            data={
                "items": len(outcomes),
                "updated": result.updated,
                "fully_synced": result.fully_synced,
                "quote_total": str(quote_total),
            },
            source_module="quotes.sync",
        ))
        return result

    async def recompute_quote_total(self, db: AsyncSession, quote_id: uuid.UUID) -> Decimal:
        """Rewrite a quote's total from its current line items and commit."""
        if await queries.get_quote(db, quote_id) is None:
            raise QuoteNotFoundError(quote_id)
        try:
            total = await self._write_quote_total(db, quote_id)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            msg = f"Failed to recompute total for quote {quote_id}: {exc}"
            raise WriteFailedError(msg) from exc
        return total

    # ── Internals ────────────────────────────────────────────────────

    async def _resync_item(
        self,
        db: AsyncSession,
        quote_id: uuid.UUID,
        raw_kind: str,
        service_id: uuid.UUID,
        quantity: int,
    ) -> ItemSyncOutcome:
        outcome = ItemSyncOutcome(
            service_kind=raw_kind, service_id=service_id, quantity=quantity, ok=False
        )

        try:
            kind = ServiceKind.parse(raw_kind)
            record = await queries.get_service_record(db, kind, service_id)
            if record is None:
                raise ServiceRecordNotFoundError(kind.value, service_id)
            if not (record.price_code or "").strip():
                msg = f"{kind.value} service record {service_id} has no price code"
                raise NotFoundError(msg)

            outcome.price_code = record.price_code
            synced = await self.sync_one(db, quote_id, kind, service_id, record.price_code, quantity)
        except EngineError as exc:
            logger.warning("Could not resync %s %s in quote %s: %s", raw_kind, service_id, quote_id, exc)
            outcome.error = exc.code
            outcome.message = str(exc)
            return outcome

        outcome.ok = True
        outcome.unit_price = synced.unit_price
        outcome.line_total = synced.line_total
        return outcome

    @staticmethod
    async def _write_quote_total(db: AsyncSession, quote_id: uuid.UUID) -> Decimal:
        total = await queries.sum_quote_items(db, quote_id)
        await queries.set_quote_total(db, quote_id, total)
        return total


line_item_synchronizer = LineItemSynchronizer()
