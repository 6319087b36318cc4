"""FastAPI application entry point — wires the activity log into a web app.

Usage:
    python -m activitylog.main

Every request except the excluded paths goes through AccessLogMiddleware.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from activitylog.config import settings
from activitylog.factory import build_recorder
from activitylog.http.middleware import AccessLogMiddleware

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
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
    logger.info("Starting activity log service (env=%s)", settings.environment)

    async with contextlib.AsyncExitStack() as stack:
        # Database and Redis are only needed by the database sink / redis cache
        if settings.activity.sink == "database" or settings.activity.cache_backend == "redis":
            from activitylog.db.engine import db_lifespan

            await stack.enter_async_context(db_lifespan())
            logger.info("Database initialized")

        try:
            yield
        finally:
            logger.info("Shutting down activity log service...")
            await app.state.recorder.drain()
            logger.info("Pending activity log writes flushed")

    logger.info("Activity log service shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────


def create_app() -> FastAPI:
    """Build the FastAPI app with the access-log middleware installed."""
    application = FastAPI(
        title="Activity Log",
        description="Access and entity activity logging with device detection",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.state.recorder = build_recorder()
    application.add_middleware(
        AccessLogMiddleware,
        recorder=application.state.recorder,
        exclude_paths=settings.activity.exclude_paths,
    )

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "environment": settings.environment,
        }

    return application


app = create_app()


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "activitylog.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
