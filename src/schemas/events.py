"""DomainEvent schema: the event type emitted by the quote engine.

Subscribers (notification delivery, dashboards, the startup log subscriber)
consume these events; the engine never depends on what they do.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the engine."""

    # Price synchronization
    QUOTE_ITEM_SYNCED = "quote.item_synced"
    QUOTE_PRICE_UNRESOLVED = "quote.price_unresolved"
    QUOTE_RESYNCED = "quote.resynced"

    # Lifecycle
    QUOTE_SUBMITTED = "quote.submitted"
    QUOTE_APPROVED = "quote.approved"
    QUOTE_APPROVAL_CANCELLED = "quote.approval_cancelled"
    QUOTE_REJECTED = "quote.rejected"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class DomainEvent(BaseModel):
    """Immutable record of something the engine did."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (optional; system events have no quote)
    quote_id: uuid.UUID | None = None
    actor_id: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
