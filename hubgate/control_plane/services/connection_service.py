"""
Connection Broker Service

Issues, rotates, revokes and authenticates tenant Connections.

Credential Indirection:
=======================
A Connection key only ever authenticates a tenant to the gateway. Backends
never see it; the gateway substitutes its own short-lived credential per
request.

    tenant ──(hgk-... key)──► gateway ──(minted token)──► backend

Rotation:
=========
Rotation replaces the key hash and bumps key_version; id and allow-list are
unchanged. With CONNECTION_ROTATION_GRACE_SECONDS = 0 (default) the old key
stops working as soon as the rotation commits. A positive value keeps the
previous hash valid until previous_key_valid_until.

Locking:
========
Issue/rotate/revoke take a row lock on the owning tenant (SELECT ... FOR
UPDATE on PostgreSQL), serializing lifecycle changes per tenant. These are
not hot-path operations.
"""

from datetime import UTC, datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.settings import settings
from hubgate.core.exceptions import (
    ConflictError,
    ConnectionNotFoundError,
    ModelNotAllowedError,
    TenantNotFoundError,
    UnauthenticatedError,
    UnknownModelError,
)
from hubgate.core.logging import logger
from hubgate.core.security import generate_api_key, get_api_key_prefix, hash_api_key
from hubgate.core.utils import dedupe_preserving_order
from hubgate.db.repositories import (
    ConnectionRepository,
    LogicalModelRepository,
    TenantRepository,
)
from hubgate.models.connection import Connection
from hubgate.models.tenant import Tenant
from hubgate.schemas.connection import (
    ConnectionContext,
    ConnectionCreatedResponse,
    ConnectionResponse,
)


class ConnectionBrokerService:
    """Service for Connection lifecycle and gateway authentication."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = ConnectionRepository(session)
        self.tenant_repo = TenantRepository(session)
        self.model_repo = LogicalModelRepository(session)

    async def _lock_tenant(self, tenant_id: UUID) -> Tenant:
        result = await self.session.execute(
            select(Tenant)
            .where(Tenant.id == tenant_id, Tenant.deleted_at.is_(None))
            .with_for_update()
        )
        tenant = result.scalar_one_or_none()
        if not tenant:
            raise TenantNotFoundError(str(tenant_id))
        return tenant

    # ═══════════════════════════════════════════════════════════════════════════
    # ISSUE
    # ═══════════════════════════════════════════════════════════════════════════

    async def issue(
        self,
        tenant_id: UUID,
        requested_models: list[str],
        gateway_target: Optional[str] = None,
        name: str = "hub-gateway",
    ) -> ConnectionCreatedResponse:
        """
        Issue a new Connection for a tenant.

        Validation runs before any write, so a failure leaves nothing behind.

        Args:
            tenant_id: Owning tenant
            requested_models: Logical models for the allow-list (duplicates collapse)
            gateway_target: Gateway base URL, defaults to GATEWAY_PUBLIC_URL
            name: Display name

        Returns:
            The Connection together with its plain key (shown only once)

        Raises:
            TenantNotFoundError: If the tenant does not exist
            UnknownModelError: If any requested model is not registered
            ModelNotAllowedError: If any model is outside the tenant's allowed_models
        """
        tenant = await self._lock_tenant(tenant_id)
        models = dedupe_preserving_order(requested_models)

        registered = await self.model_repo.get_registered_names(models)
        unknown = [m for m in models if m not in registered]
        if unknown:
            raise UnknownModelError(unknown)

        allowed = set(tenant.allowed_models or [])
        disallowed = [m for m in models if m not in allowed]
        if disallowed:
            raise ModelNotAllowedError(
                disallowed,
                message=f"Tenant '{tenant.unique_name}' may not use: {', '.join(disallowed)}",
            )

        plain_key, key_hash = generate_api_key()
        connection = await self.repo.create(
            tenant_id=tenant.id,
            name=name,
            gateway_target=gateway_target or settings.GATEWAY_PUBLIC_URL,
            key_hash=key_hash,
            key_prefix=get_api_key_prefix(plain_key),
            key_version=1,
            model_allow_list=models,
            metadata_={},
        )

        logger.info(
            "Connection issued",
            connection_id=str(connection.id),
            tenant=tenant.unique_name,
            models=models,
            key_prefix=connection.key_prefix,
        )
        return self._to_created_response(connection, plain_key)

    # ═══════════════════════════════════════════════════════════════════════════
    # ROTATE / REVOKE
    # ═══════════════════════════════════════════════════════════════════════════

    async def rotate(
        self,
        connection_id: UUID,
        grace_seconds: Optional[int] = None,
    ) -> ConnectionCreatedResponse:
        """
        Replace a Connection's key, keeping its id and allow-list.

        Raises:
            ConnectionNotFoundError: If the connection does not exist
            ConflictError: If the connection is revoked
        """
        connection = await self.repo.get(connection_id)
        if not connection:
            raise ConnectionNotFoundError(str(connection_id))
        await self._lock_tenant(connection.tenant_id)

        if connection.is_revoked:
            raise ConflictError(
                "Cannot rotate a revoked connection",
                details={"connection_id": str(connection_id)},
            )

        grace = settings.CONNECTION_ROTATION_GRACE_SECONDS if grace_seconds is None else grace_seconds
        now = datetime.now(UTC)
        plain_key, key_hash = generate_api_key()

        if grace > 0:
            connection.previous_key_hash = connection.key_hash
            connection.previous_key_valid_until = now + timedelta(seconds=grace)
        else:
            connection.previous_key_hash = None
            connection.previous_key_valid_until = None

        connection.key_hash = key_hash
        connection.key_prefix = get_api_key_prefix(plain_key)
        connection.key_version += 1
        connection.rotated_at = now
        await self.session.flush()

        logger.info(
            "Connection rotated",
            connection_id=str(connection.id),
            key_version=connection.key_version,
            grace_seconds=grace,
        )
        return self._to_created_response(connection, plain_key)

    async def revoke(self, connection_id: UUID) -> ConnectionResponse:
        """Permanently revoke a Connection. Revoking twice is not an error."""
        connection = await self.repo.get(connection_id)
        if not connection:
            raise ConnectionNotFoundError(str(connection_id))
        await self._lock_tenant(connection.tenant_id)

        if not connection.is_revoked:
            connection = await self.repo.revoke(connection)
            logger.info("Connection revoked", connection_id=str(connection.id))
        return self._to_response(connection)

    async def revoke_all_for_tenant(self, tenant_id: UUID) -> int:
        """Revoke every active Connection of a tenant. Returns how many."""
        connections = await self.repo.list_by_tenant(tenant_id)
        for connection in connections:
            await self.repo.revoke(connection)
        return len(connections)

    # ═══════════════════════════════════════════════════════════════════════════
    # AUTHENTICATE (gateway hot path)
    # ═══════════════════════════════════════════════════════════════════════════

    async def authenticate(self, plain_key: Optional[str]) -> ConnectionContext:
        """
        Map a presented key to its Connection.

        Raises:
            UnauthenticatedError: Missing, unknown or revoked key
        """
        if not plain_key:
            raise UnauthenticatedError("Connection credential required")

        connection = await self.repo.get_valid_by_hash(hash_api_key(plain_key))
        if not connection:
            logger.info(
                "Connection authentication failed",
                key_prefix=get_api_key_prefix(plain_key),
            )
            raise UnauthenticatedError()

        await self.repo.update_usage(connection.id)

        return ConnectionContext(
            connection_id=str(connection.id),
            tenant_id=str(connection.tenant_id),
            tenant_name=connection.tenant.unique_name,
            model_allow_list=tuple(connection.model_allow_list),
            key_version=connection.key_version,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════════════════════

    async def get(self, connection_id: UUID) -> ConnectionResponse:
        connection = await self.repo.get(connection_id)
        if not connection:
            raise ConnectionNotFoundError(str(connection_id))
        return self._to_response(connection)

    async def list_by_tenant(
        self,
        tenant_id: UUID,
        include_revoked: bool = False,
    ) -> Tuple[list[ConnectionResponse], int]:
        connections = await self.repo.list_by_tenant(tenant_id, include_revoked=include_revoked)
        return [self._to_response(c) for c in connections], len(connections)

    def _to_response(self, connection: Connection) -> ConnectionResponse:
        return ConnectionResponse(**self._fields(connection))

    def _to_created_response(
        self,
        connection: Connection,
        plain_key: str,
    ) -> ConnectionCreatedResponse:
        return ConnectionCreatedResponse(key=plain_key, **self._fields(connection))

    def _fields(self, connection: Connection) -> dict:
        return {
            "id": str(connection.id),
            "tenant_id": str(connection.tenant_id),
            "name": connection.name,
            "gateway_target": connection.gateway_target,
            "key_prefix": connection.key_prefix,
            "key_version": connection.key_version,
            "model_allow_list": list(connection.model_allow_list),
            "is_revoked": connection.is_revoked,
            "revoked_at": connection.revoked_at,
            "rotated_at": connection.rotated_at,
            "previous_key_valid_until": connection.previous_key_valid_until,
            "last_used_at": connection.last_used_at,
            "usage_count": connection.usage_count,
            "created_at": connection.created_at,
        }
