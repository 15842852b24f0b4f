"""FastAPI application entry point: wires everything together.

Usage:
    python -m src.main

Serves the quote engine API behind whatever gateway handles authentication.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from src.api.routes import engine_error_handler, router
from src.config import settings
from src.db.engine import db_lifespan
from src.errors import EngineError
from src.events.bus import log_event, start_event_system, stop_event_system, subscribe, unsubscribe

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting quote engine (env=%s)", settings.environment)

    # 1. Database
    async with db_lifespan():
        logger.info("Database initialized")

        # 2. Event system with the structured-log subscriber
        subscribe(log_event)
        await start_event_system()

        try:
            yield
        finally:
            logger.info("Shutting down quote engine...")
            await stop_event_system()
            unsubscribe(log_event)

    logger.info("Quote engine shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Travel Back Office Quote Engine",
    description="Quote pricing, approval and reservation/payment reconciliation",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(router)
app.add_exception_handler(EngineError, engine_error_handler)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
