"""Pydantic schemas for engine results and HTTP request bodies.

Pure data classes with no DB dependencies. The engine services return these;
the API layer serializes them as-is.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, computed_field

from src.pricing.kinds import ServiceKind

# ---------------------------------------------------------------------------
# Line-item synchronization
# ---------------------------------------------------------------------------


class ItemSyncResult(BaseModel):
    """Outcome of one successful single-item synchronization."""

    quote_id: uuid.UUID
    service_kind: ServiceKind
    service_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    quote_total: Decimal


class ItemSyncOutcome(BaseModel):
    """Per-item entry of a bulk resynchronization (success or failure)."""

    service_kind: str
    service_id: uuid.UUID
    quantity: int
    ok: bool
    price_code: str | None = None
    unit_price: Decimal | None = None
    line_total: Decimal | None = None
    error: str | None = Field(default=None, description="Error code when ok is False")
    message: str | None = None


class SyncAllResult(BaseModel):
    """Outcome of resynchronizing every line item of a quote."""

    quote_id: uuid.UUID
    items: list[ItemSyncOutcome] = Field(default_factory=list)
    quote_total: Decimal

    @computed_field  # type: ignore[prop-decorator]
    @property
    def updated(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def fully_synced(self) -> bool:
        """True when every item resolved; False means the total may be partially stale."""
        return all(item.ok for item in self.items)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TransitionResult(BaseModel):
    """Outcome of an accepted lifecycle transition."""

    quote_id: uuid.UUID
    trigger: str
    previous_status: str
    new_status: str
    actor_id: str
    at: datetime


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


class OwnerInfo(BaseModel):
    id: uuid.UUID | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class ReservationSummary(BaseModel):
    id: uuid.UUID
    reservation_type: str
    status: str


class QuoteSummary(BaseModel):
    """One row of the reconciliation view."""

    quote_id: uuid.UUID
    title: str | None
    owner: OwnerInfo
    total_price: Decimal
    payment_status: str
    status: str
    created_at: datetime | None = None
    reservation_count: int
    has_active_reservation: bool
    reservations: list[ReservationSummary] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# HTTP request bodies
# ---------------------------------------------------------------------------


class SyncItemRequest(BaseModel):
    service_kind: str
    service_id: uuid.UUID
    price_code: str
    quantity: int = 1


class TransitionRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)
