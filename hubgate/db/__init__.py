"""
Database Module

Database connectivity and session management for HubGate.

Architecture Overview:
======================
    FastAPI Route
        │  Dependency Injection: get_db()
        ▼
    AsyncSession (one per request; commit on success, rollback on error)
        │  Passed to a Service, which builds Repositories
        ▼
    Repository (flush only; never commits)
        │
        ▼
    PostgreSQL (SQLite for local runs)

Usage in FastAPI:
=================
    from hubgate.db import get_db
    from hubgate.db.repositories import TenantRepository

    @router.get("/tenants/{unique_name}")
    async def get_tenant(unique_name: str, db: AsyncSession = Depends(get_db)):
        return await TenantRepository(db).get_by_unique_name(unique_name)
"""

from hubgate.db.session import (
    get_db,
    init_db,
    close_db,
    session_scope,
    AsyncSessionLocal,
)

__all__ = [
    "get_db",
    "init_db",
    "close_db",
    "session_scope",
    "AsyncSessionLocal",
]
