"""Engine exception hierarchy.

Every error carries a stable ``code`` so HTTP handlers and per-item sync
results can report it without string matching. Partial failure of bulk
operations is not an exception: see ``SyncAllResult``.
"""

from __future__ import annotations

import uuid


class EngineError(Exception):
    """Base class for all quote/reservation engine errors."""

    code = "engine_error"


class NotFoundError(EngineError):
    """A required row or price entry does not exist."""

    code = "not_found"


class PriceNotFoundError(NotFoundError):
    """The price code has no entry in the kind's price table."""

    def __init__(self, service_kind: str, price_code: str) -> None:
        self.service_kind = service_kind
        self.price_code = price_code
        super().__init__(f"Price code {price_code!r} has no entry in the {service_kind} price table")


class QuoteNotFoundError(NotFoundError):
    def __init__(self, quote_id: uuid.UUID) -> None:
        self.quote_id = quote_id
        super().__init__(f"Quote {quote_id} not found")


class ServiceRecordNotFoundError(NotFoundError):
    def __init__(self, service_kind: str, service_id: uuid.UUID) -> None:
        self.service_kind = service_kind
        self.service_id = service_id
        super().__init__(f"No {service_kind} service record with id {service_id}")


class InvalidTransitionError(EngineError):
    """A lifecycle trigger was attempted from a state that does not permit it."""

    code = "invalid_transition"

    def __init__(self, quote_id: uuid.UUID, current_status: str, trigger: str) -> None:
        self.quote_id = quote_id
        self.current_status = current_status
        self.trigger = trigger
        super().__init__(f"Cannot {trigger} quote {quote_id} in status {current_status!r}")


class WriteFailedError(EngineError):
    """The store rejected a write (constraint violation, lost connection, ...)."""

    code = "write_failed"


class InvalidInputError(EngineError, ValueError):
    """Caller supplied an unknown service kind, an empty price code or a bad quantity."""

    code = "invalid_input"
