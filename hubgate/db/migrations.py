"""
Database Migration Runner

Runs Alembic migrations on application startup with distributed locking.
PostgreSQL advisory locks ensure only one instance migrates at a time.

Non-PostgreSQL databases (local SQLite) are skipped here; init_db creates
their schema from the models.

Usage:
    Set RUN_MIGRATIONS_ON_STARTUP=true in environment variables.
"""

import asyncio
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from alembic import command
from alembic.config import Config
from alembic.util.exc import CommandError

from hubgate.config.settings import settings
from hubgate.core.logging import logger
from hubgate.db.session import engine, is_postgres_url

# Advisory lock ID for migrations (arbitrary unique number)
MIGRATION_LOCK_ID = 481_516_2342
MAX_LOCK_ATTEMPTS = 30


def get_alembic_config() -> Config:
    """Get Alembic configuration pointing at the project's alembic.ini.

    Raises:
        FileNotFoundError: If alembic.ini is not at the project root
    """
    # hubgate/db/migrations.py -> project root is three levels up
    project_root = Path(__file__).resolve().parent.parent.parent
    alembic_ini = project_root / "alembic.ini"

    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(project_root / "alembic"))
    config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    return config


async def acquire_migration_lock() -> bool:
    """Try to take the advisory lock without blocking."""
    async with engine.connect() as conn:
        result = await conn.execute(
            text("SELECT pg_try_advisory_lock(:lock_id)"), {"lock_id": MIGRATION_LOCK_ID}
        )
        row = result.fetchone()
        return bool(row[0]) if row else False


async def release_migration_lock() -> None:
    """Release the PostgreSQL advisory lock."""
    async with engine.connect() as conn:
        await conn.execute(
            text("SELECT pg_advisory_unlock(:lock_id)"), {"lock_id": MIGRATION_LOCK_ID}
        )
        await conn.commit()


def _run_alembic_upgrade_sync() -> None:
    # env.py calls asyncio.run(), so this must run outside the app's loop
    command.upgrade(get_alembic_config(), "head")


async def run_alembic_upgrade() -> None:
    """Run ``alembic upgrade head`` in a worker thread."""
    await asyncio.to_thread(_run_alembic_upgrade_sync)


async def run_migrations() -> None:
    """Run database migrations under a distributed lock.

    If another instance holds the lock, waits up to MAX_LOCK_ATTEMPTS seconds
    and then assumes that instance completed the upgrade.
    """
    if not settings.RUN_MIGRATIONS_ON_STARTUP:
        logger.debug("RUN_MIGRATIONS_ON_STARTUP is disabled, skipping migrations")
        return

    if not is_postgres_url(settings.DATABASE_URL):
        logger.debug("Non-PostgreSQL database, skipping alembic migrations")
        return

    logger.info("Attempting to run database migrations...")

    for attempt in range(1, MAX_LOCK_ATTEMPTS + 1):
        try:
            if await acquire_migration_lock():
                logger.info("Migration lock acquired, running migrations...")
                try:
                    await run_alembic_upgrade()
                    logger.info("Database migrations completed successfully")
                    return
                finally:
                    await release_migration_lock()
                    logger.debug("Migration lock released")

            logger.info(
                "Migration lock held by another instance, waiting",
                attempt=attempt,
                max_attempts=MAX_LOCK_ATTEMPTS,
            )
            await asyncio.sleep(1)

        except (SQLAlchemyError, CommandError, OSError) as e:
            logger.error("Migration failed", error=str(e))
            raise

    logger.warning(
        "Could not acquire migration lock after max attempts. "
        "Assuming another instance completed migrations."
    )
