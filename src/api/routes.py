"""Quote engine HTTP API: FastAPI router over the synchronizer, lifecycle and reconciler.

The caller's identity arrives pre-authenticated in the ``X-Actor-Id``
header; this layer does not verify it.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import get_session
from src.errors import (
    EngineError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    WriteFailedError,
)
from src.models.enums import ReconcileFilter
from src.quotes.lifecycle import quote_lifecycle
from src.quotes.sync import line_item_synchronizer
from src.reconciliation.reconciler import reconciler
from src.schemas.quotes import (
    ItemSyncResult,
    QuoteSummary,
    SyncAllResult,
    SyncItemRequest,
    TransitionRequest,
    TransitionResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["quotes"])

_STATUS_BY_ERROR: list[tuple[type[EngineError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (InvalidInputError, 422),
    (WriteFailedError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


async def engine_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map engine errors to HTTP responses. Registered on the app in src.main."""
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_cls, http_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            code = http_status
            break
    error_code = exc.code if isinstance(exc, EngineError) else "engine_error"
    return JSONResponse(status_code=code, content={"error": error_code, "detail": str(exc)})


async def get_actor_id(x_actor_id: str = Header(...)) -> str:
    """Actor id supplied by the upstream identity layer."""
    return x_actor_id


# ── Price synchronization ────────────────────────────────────────────


@router.post("/{quote_id}/items/sync", response_model=ItemSyncResult)
async def sync_item(
    quote_id: uuid.UUID,
    body: SyncItemRequest,
    db: AsyncSession = Depends(get_session),
) -> ItemSyncResult:
    """Price one service and fold it into the quote total."""
    return await line_item_synchronizer.sync_one(
        db, quote_id, body.service_kind, body.service_id, body.price_code, body.quantity
    )


@router.post("/{quote_id}/sync", response_model=SyncAllResult)
async def sync_quote(
    quote_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
) -> SyncAllResult:
    """Re-resolve every line item of the quote from current price tables."""
    return await line_item_synchronizer.sync_all(db, quote_id)


# ── Lifecycle ────────────────────────────────────────────────────────


@router.post("/{quote_id}/submit", response_model=TransitionResult)
async def submit_quote(
    quote_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    actor_id: str = Depends(get_actor_id),
) -> TransitionResult:
    return await quote_lifecycle.submit(db, quote_id, actor_id)


@router.post("/{quote_id}/approve", response_model=TransitionResult)
async def approve_quote(
    quote_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    actor_id: str = Depends(get_actor_id),
) -> TransitionResult:
    return await quote_lifecycle.approve(db, quote_id, actor_id)


@router.post("/{quote_id}/cancel-approval", response_model=TransitionResult)
async def cancel_quote_approval(
    quote_id: uuid.UUID,
    body: TransitionRequest | None = None,
    db: AsyncSession = Depends(get_session),
    actor_id: str = Depends(get_actor_id),
) -> TransitionResult:
    reason = body.reason if body else None
    return await quote_lifecycle.cancel_approval(db, quote_id, actor_id, reason)


@router.post("/{quote_id}/reject", response_model=TransitionResult)
async def reject_quote(
    quote_id: uuid.UUID,
    body: TransitionRequest | None = None,
    db: AsyncSession = Depends(get_session),
    actor_id: str = Depends(get_actor_id),
) -> TransitionResult:
    reason = body.reason if body else None
    return await quote_lifecycle.reject(db, quote_id, actor_id, reason)


# ── Reconciliation ───────────────────────────────────────────────────


@router.get("/reconciliation", response_model=list[QuoteSummary])
async def reconciliation_view(
    filter: ReconcileFilter = Query(default=ReconcileFilter.ALL),  # noqa: A002
    search: str | None = Query(default=None, max_length=200),
    db: AsyncSession = Depends(get_session),
) -> list[QuoteSummary]:
    """Quotes with reservations, classified paid/pending from payments."""
    return await reconciler.reconcile(db, filter, search=search)
