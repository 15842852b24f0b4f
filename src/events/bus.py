"""Event emitter and subscriber system.

Async pub/sub for DomainEvents. The notification collaborator and the
startup log subscriber register here; the engine only emits.

Usage:
    # Emit an event from anywhere:
    from src.events.bus import emit

    await emit(DomainEvent(
        event_type=EventType.QUOTE_APPROVED,
        quote_id=quote.id,
        actor_id="mgr1",
    ))

    # Register a subscriber at startup:
    from src.events.bus import subscribe

    subscribe(my_handler)  # async def my_handler(event: DomainEvent) -> None

Until start_event_system() runs, emit() dispatches inline; afterwards
events go through a queue drained by a background worker.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

from src.schemas.events import DomainEvent, EventType

logger = logging.getLogger(__name__)

# Type alias for event handler functions
EventHandler = Callable[[DomainEvent], Coroutine[Any, Any, None]]

# ── Internal state ───────────────────────────────────────────────────

_subscribers: list[EventHandler] = []
_type_subscribers: dict[EventType, list[EventHandler]] = {}
_queue: asyncio.Queue[DomainEvent] | None = None
_worker_task: asyncio.Task[None] | None = None


# ── Public API ───────────────────────────────────────────────────────


def subscribe(handler: EventHandler, event_types: list[EventType] | None = None) -> None:
    """Register an event handler.

    Args:
        handler: Async function that accepts a DomainEvent.
        event_types: If provided, handler only receives these event types.
                     If None, handler receives ALL events.
    """
    if event_types is None:
        _subscribers.append(handler)
        logger.info("Registered global event subscriber: %s", handler.__name__)
    else:
        for et in event_types:
            _type_subscribers.setdefault(et, []).append(handler)
        logger.info(
            "Registered event subscriber %s for types: %s",
            handler.__name__,
            [t.value for t in event_types],
        )


def unsubscribe(handler: EventHandler) -> None:
    """Remove a previously registered handler."""
    if handler in _subscribers:
        _subscribers.remove(handler)
    for handlers in _type_subscribers.values():
        if handler in handlers:
            handlers.remove(handler)


async def emit(event: DomainEvent) -> None:
    """Publish a DomainEvent to all subscribers.

    Queued when the background worker is running so the emitter is never
    blocked by slow subscribers; dispatched inline otherwise.
    """
    if _queue is not None and _worker_task is not None and not _worker_task.done():
        await _queue.put(event)
    else:
        await _dispatch(event)
    logger.debug("Event emitted: %s (quote=%s)", event.event_type.value, event.quote_id)


async def log_event(event: DomainEvent) -> None:
    """Global subscriber that writes every event to the structured log."""
    structlog.get_logger("events").info(
        event.event_type.value,
        quote_id=str(event.quote_id) if event.quote_id else None,
        actor_id=event.actor_id,
        source=event.source_module,
        **event.data,
    )


# ── Background worker ────────────────────────────────────────────────


async def _event_worker() -> None:
    """Background task that drains the event queue and dispatches to subscribers."""
    if _queue is None:
        return

    while True:
        try:
            event = await _queue.get()
            await _dispatch(event)
            _queue.task_done()
        except asyncio.CancelledError:
            logger.info("Event worker shutting down")
            break
        except Exception:
            logger.exception("Error in event worker")


async def _dispatch(event: DomainEvent) -> None:
    """Dispatch a single event to all matching subscribers."""
    handlers: list[EventHandler] = list(_subscribers)

    if event.event_type in _type_subscribers:
        handlers.extend(_type_subscribers[event.event_type])

    if not handlers:
        return

    # Run all handlers concurrently; isolate failures
    results = await asyncio.gather(
        *[_safe_call(handler, event) for handler in handlers],
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, Exception):
            logger.error("Event handler failed for %s: %s", event.event_type.value, result)


async def _safe_call(handler: EventHandler, event: DomainEvent) -> None:
    """Call a handler with error isolation."""
    try:
        await handler(event)
    except Exception:
        logger.exception("Handler %s failed for event %s", handler.__name__, event.event_type.value)
        raise


# ── Lifecycle ────────────────────────────────────────────────────────


async def start_event_system() -> None:
    """Start the background worker. Call during FastAPI lifespan startup."""
    global _queue, _worker_task
    _queue = asyncio.Queue()
    _worker_task = asyncio.create_task(_event_worker())
    logger.info(
        "Event system started with %d global + %d typed subscribers",
        len(_subscribers),
        sum(len(v) for v in _type_subscribers.values()),
    )


async def stop_event_system() -> None:
    """Drain pending events and stop the worker. Call during lifespan shutdown."""
    global _worker_task, _queue

    if _queue is not None and _worker_task is not None and not _worker_task.done():
        await _queue.join()

    if _worker_task is not None and not _worker_task.done():
        _worker_task.cancel()
        try:
            await _worker_task
        except asyncio.CancelledError:
            pass

    _worker_task = None
    _queue = None
    logger.info("Event system stopped")
