"""
Connection Repository

Database operations for the Connection model.

Key Concept - Hash-Based Lookup:
================================
The plain key is never stored, only its SHA-256 hash.

    When issued or rotated:
        plain_key = "hgk-abc123xyz789..."
        → Store: SHA256(plain_key) in key_hash
        → Return: plain_key to the tenant (shown only ONCE)

    When authenticating at the gateway:
        Request: api-key: hgk-abc123xyz789...
        → Query: key_hash = SHA256(...)  (or previous_key_hash within grace)
        → Found and not revoked? → Authenticated
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from hubgate.db.repositories.base import BaseRepository
from hubgate.models.connection import Connection
from hubgate.models.tenant import Tenant


class ConnectionRepository(BaseRepository[Connection]):
    """
    Repository for Connection database operations.

    Provides methods for:
    - Authentication (lookup by current or grace-period hash)
    - Usage tracking
    - Tenant-scoped listing and revocation
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Connection, session)

    # ═══════════════════════════════════════════════════════════════════════════
    # AUTHENTICATION (hot path)
    # ═══════════════════════════════════════════════════════════════════════════

    async def get_valid_by_hash(self, key_hash: str) -> Connection | None:
        """
        Get the non-revoked connection a key hash authenticates, if any.

        The current hash always matches. A previous hash matches only while
        the rotation grace period is open. Connections of soft-deleted tenants
        never match.

        Args:
            key_hash: SHA-256 hash of the presented key

        Returns:
            Connection with tenant loaded, or None
        """
        result = await self.session.execute(
            select(Connection)
            .join(Tenant, Connection.tenant_id == Tenant.id)
            .options(joinedload(Connection.tenant))
            .where(
                or_(
                    Connection.key_hash == key_hash,
                    Connection.previous_key_hash == key_hash,
                ),
                Connection.is_revoked.is_(False),
                Tenant.deleted_at.is_(None),
            )
        )
        for connection in result.unique().scalars().all():
            if connection.key_hash == key_hash:
                return connection
            if connection.accepts_previous_key():
                return connection
        return None

    async def update_usage(self, connection_id: UUID) -> None:
        """Stamp last_used_at and increment usage_count after authentication."""
        await self.session.execute(
            update(Connection)
            .where(Connection.id == connection_id)
            .values(
                last_used_at=datetime.now(UTC),
                usage_count=Connection.usage_count + 1,
            )
        )
        await self.session.flush()

    # ═══════════════════════════════════════════════════════════════════════════
    # TENANT-SCOPED QUERIES
    # ═══════════════════════════════════════════════════════════════════════════

    async def list_by_tenant(
        self,
        tenant_id: UUID,
        *,
        include_revoked: bool = False,
    ) -> list[Connection]:
        """List a tenant's connections, oldest first."""
        query = select(Connection).where(Connection.tenant_id == tenant_id)
        if not include_revoked:
            query = query.where(Connection.is_revoked.is_(False))
        query = query.order_by(Connection.created_at.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def revoke(self, connection: Connection) -> Connection:
        """
        Permanently revoke a connection.

        Already-revoked connections are returned unchanged, keeping the
        original revoked_at.
        """
        if connection.is_revoked:
            return connection

        connection.is_revoked = True
        connection.revoked_at = datetime.now(UTC)
        connection.previous_key_hash = None
        connection.previous_key_valid_until = None

        await self.session.flush()
        await self.session.refresh(connection)
        return connection
