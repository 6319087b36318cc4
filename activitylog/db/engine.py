"""Async database engine, session factory, and lifespan management.

Uses SQLAlchemy 2.0 async with asyncpg driver for PostgreSQL.
Redis client for the shared result cache.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from activitylog.config import settings

# ── Async PostgreSQL engine ──────────────────────────────────────────

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,
    pool_recycle=3600,
)

# ── Session factory ──────────────────────────────────────────────────

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Redis client ─────────────────────────────────────────────────────

redis_client: aioredis.Redis = aioredis.from_url(
    settings.db.redis_url,
    decode_responses=True,
)


# ── Lifespan helpers ─────────────────────────────────────────────────


async def init_db() -> None:
    """Verify connectivity; in development also create missing tables.

    In production, tables are created via Alembic migrations.
    """
    async with engine.begin() as conn:
        # Import here to ensure all models are registered with Base.metadata
        from activitylog.models import Base

        if not settings.is_production:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose database engine and Redis connections."""
    await engine.dispose()
    await redis_client.aclose()


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Context manager for database lifecycle.

    Usage in FastAPI lifespan:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with db_lifespan():
                yield
    """
    await init_db()
    try:
        yield
    finally:
        await close_db()
