"""
Database Session Management

Async SQLAlchemy engine, session factory and lifecycle helpers.

- PostgreSQL (asyncpg) is the production target; schema is owned by Alembic.
- SQLite (aiosqlite) is supported for local runs; the schema is created
  directly from the models on startup.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hubgate.config.settings import settings
from hubgate.core.logging import logger
from hubgate.models import Base


def is_postgres_url(url: str) -> bool:
    """Whether a database URL targets PostgreSQL."""
    return url.startswith("postgresql")


def create_engine(url: str | None = None) -> AsyncEngine:
    """Create the async engine for a database URL.

    Args:
        url: Database URL, defaults to settings.DATABASE_URL

    Returns:
        AsyncEngine with pool_pre_ping enabled
    """
    database_url = url or settings.DATABASE_URL
    kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": False}
    if is_postgres_url(database_url):
        kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
        kwargs["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return create_async_engine(database_url, **kwargs)


def create_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids lazy loads after commit
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# The engine does not connect until first use
engine: AsyncEngine = create_engine()
AsyncSessionLocal: async_sessionmaker[AsyncSession] = create_sessionmaker(engine)


async def init_db() -> None:
    """Verify connectivity and, outside PostgreSQL, create the schema."""
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if not is_postgres_url(settings.DATABASE_URL):
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database schema created from models", url=engine.url.drivername)
    logger.info("Database initialized")


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
    logger.info("Database connections closed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request.

    Commits when the handler returns normally, rolls back on any exception.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Transactional session for scripts and background jobs."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
