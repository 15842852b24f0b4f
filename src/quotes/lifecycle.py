"""Quote lifecycle controller: approval state machine for quotes.

Each transition is a single conditional UPDATE guarded by the status the
controller just read, so of two concurrent callers only one succeeds; the
other gets InvalidTransitionError instead of overwriting. Line items are
never touched here.

Authorization is the caller's job: ``actor_id`` is trusted as given.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db import queries
from src.errors import InvalidTransitionError, QuoteNotFoundError, WriteFailedError
from src.events.bus import emit
from src.quotes.states import APPROVE, CANCEL_APPROVAL, REJECT, SUBMIT, can_transition, target_for
from src.schemas.events import DomainEvent, EventType
from src.schemas.quotes import TransitionResult

logger = logging.getLogger(__name__)

_TRIGGER_EVENTS: dict[str, EventType] = {
    SUBMIT: EventType.QUOTE_SUBMITTED,
    APPROVE: EventType.QUOTE_APPROVED,
    REJECT: EventType.QUOTE_REJECTED,
    CANCEL_APPROVAL: EventType.QUOTE_APPROVAL_CANCELLED,
}


class QuoteLifecycle:
    """Applies approval-state transitions to quotes."""

    async def submit(self, db: AsyncSession, quote_id: uuid.UUID, actor_id: str) -> TransitionResult:
        """Send a draft quote for review (draft → pending)."""
        return await self._transition(db, quote_id, SUBMIT, actor_id)

    async def approve(self, db: AsyncSession, quote_id: uuid.UUID, approver_id: str) -> TransitionResult:
        """Approve a draft or pending quote and stamp the approval audit fields.

        Also used to re-approve a quote whose approval was cancelled.
        """
        now = datetime.now(UTC)
        return await self._transition(
            db,
            quote_id,
            APPROVE,
            approver_id,
            values={"approved_at": now, "approved_by": approver_id},
            at=now,
        )

    async def cancel_approval(
        self,
        db: AsyncSession,
        quote_id: uuid.UUID,
        approver_id: str,
        reason: str | None = None,
    ) -> TransitionResult:
        """Reverse an approval (approved → draft).

        approved_at / approved_by keep their last values so the quote still
        shows who approved it last.
        """
        return await self._transition(
            db,
            quote_id,
            CANCEL_APPROVAL,
            approver_id,
            values={"cancellation_reason": reason or None},
            data={"reason": reason},
        )

    async def reject(
        self,
        db: AsyncSession,
        quote_id: uuid.UUID,
        approver_id: str,
        note: str | None = None,
    ) -> TransitionResult:
        """Reject a draft or pending quote.

        The note goes to manager_note; cancellation_reason belongs to the last
        reversed approval and is left as it is.
        """
        return await self._transition(
            db,
            quote_id,
            REJECT,
            approver_id,
            values={"manager_note": note or None},
            data={"note": note},
        )

    async def _transition(
        self,
        db: AsyncSession,
        quote_id: uuid.UUID,
        trigger: str,
        actor_id: str,
        values: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        at: datetime | None = None,
    ) -> TransitionResult:
        target = target_for(trigger)

        current = await queries.get_quote_status(db, quote_id)
        if current is None:
            raise QuoteNotFoundError(quote_id)
        if not can_transition(current, trigger):
            logger.info("Rejected %s on quote %s (status=%s)", trigger, quote_id, current)
            raise InvalidTransitionError(quote_id, current, trigger)

        try:
            updated = await queries.update_quote_if_status(
                db,
                quote_id,
                [current],
                {"status": target.value, **(values or {})},
            )
            if updated == 0:
                await db.rollback()
            else:
                await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Write failed applying %s to quote %s", trigger, quote_id)
            msg = f"Failed to {trigger} quote {quote_id}: {exc}"
            raise WriteFailedError(msg) from exc

        if updated == 0:
            # Lost a race: someone changed or removed the quote after our read.
            latest = await queries.get_quote_status(db, quote_id)
            if latest is None:
                raise QuoteNotFoundError(quote_id)
            raise InvalidTransitionError(quote_id, latest, trigger)

        logger.info(
            "Quote transition: %s --%s--> %s (quote=%s, actor=%s)",
            current,
            trigger,
            target.value,
            quote_id,
            actor_id,
        )

        await emit(DomainEvent(
            event_type=_TRIGGER_EVENTS[trigger],
            quote_id=quote_id,
            actor_id=actor_id,
            data={"from_status": current, "to_status": target.value, **(data or {})},
            source_module="quotes.lifecycle",
        ))

        return TransitionResult(
            quote_id=quote_id,
            trigger=trigger,
            previous_status=current,
            new_status=target.value,
            actor_id=actor_id,
            at=at or datetime.now(UTC),
        )


quote_lifecycle = QuoteLifecycle()
