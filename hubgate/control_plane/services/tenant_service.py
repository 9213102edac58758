"""
Tenant Service

Tenant CRUD plus the onboarding driver that attaches spokes to the hub.

Onboarding (one TenantConfig):
==============================
    allocate unique name from (subscription_id, resource_group)
        │
        ▼
    upsert tenant by unique name ── same seed ──► converge attributes
        │                        └─ other seed ─► ConflictError
        ▼
    grant principal invoke-own-resources on /tenants/{unique_name}
        │
        ▼
    attach_gateway and no active connection? ──► issue Connection

Every step converges, so re-running onboarding with the same configs
creates nothing new.
"""

from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.constants import Capability, PrincipalType, tenant_scope
from hubgate.control_plane.services.access_service import AccessPolicyService
from hubgate.control_plane.services.connection_service import ConnectionBrokerService
from hubgate.control_plane.services.naming_service import NamingAllocator
from hubgate.core.exceptions import ConflictError, TenantNotFoundError
from hubgate.core.logging import logger
from hubgate.core.utils import dedupe_preserving_order, utc_now
from hubgate.db.repositories import ConnectionRepository, TenantRepository
from hubgate.models.tenant import Tenant
from hubgate.schemas.tenant import (
    DeprovisionResponse,
    OnboardResult,
    TenantConfig,
    TenantResponse,
    TenantUpdate,
)


class TenantService:
    """Service for tenant operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = TenantRepository(session)
        self.connection_repo = ConnectionRepository(session)
        self.access = AccessPolicyService(session)
        self.broker = ConnectionBrokerService(session)

    async def get(self, tenant_id: UUID) -> TenantResponse:
        tenant = await self.repo.get_active(tenant_id)
        if not tenant:
            raise TenantNotFoundError(str(tenant_id))
        return self._to_response(tenant)

    async def get_model(self, tenant_id: UUID) -> Tenant:
        """Get the active tenant row (for authorization checks)."""
        tenant = await self.repo.get_active(tenant_id)
        if not tenant:
            raise TenantNotFoundError(str(tenant_id))
        return tenant

    async def list_tenants(self, offset: int = 0, limit: int = 100) -> Tuple[list[TenantResponse], int]:
        tenants = await self.repo.list_active(offset=offset, limit=limit)
        total = await self.repo.count_active()
        return [self._to_response(t) for t in tenants], total

    async def update(self, tenant_id: UUID, data: TenantUpdate) -> TenantResponse:
        """
        Update mutable tenant attributes.

        Narrowing allowed_models does not edit existing Connections; the
        gateway still checks each request against the registry.
        """
        tenant = await self.get_model(tenant_id)
        if data.display_name is not None:
            tenant.display_name = data.display_name
        if data.allowed_models is not None:
            tenant.allowed_models = dedupe_preserving_order(data.allowed_models)
        if data.principal_id is not None:
            tenant.principal_id = data.principal_id
        if data.metadata is not None:
            tenant.metadata_ = data.metadata
        await self.session.flush()
        return self._to_response(tenant)

    # ═══════════════════════════════════════════════════════════════════════════
    # DEPROVISION
    # ═══════════════════════════════════════════════════════════════════════════

    async def deprovision(self, tenant_id: UUID, actor: str) -> DeprovisionResponse:
        """
        Detach a tenant from the hub.

        Revokes every Connection and every grant held by the tenant's
        principal, then soft-deletes the tenant.
        """
        tenant = await self.get_model(tenant_id)

        revoked_connections = await self.broker.revoke_all_for_tenant(tenant.id)
        revoked_grants = 0
        if tenant.principal_id:
            revoked_grants = await self.access.revoke_all_for_principal(
                tenant.principal_id, revoked_by=actor
            )

        tenant.deleted_at = utc_now()
        await self.session.flush()

        logger.info(
            "Tenant deprovisioned",
            tenant=tenant.unique_name,
            revoked_connections=revoked_connections,
            revoked_grants=revoked_grants,
        )
        return DeprovisionResponse(
            tenant_id=str(tenant.id),
            unique_name=tenant.unique_name,
            revoked_connections=revoked_connections,
            revoked_grants=revoked_grants,
        )

    def _to_response(self, tenant: Tenant) -> TenantResponse:
        return TenantResponse(
            id=str(tenant.id),
            unique_name=tenant.unique_name,
            display_name=tenant.display_name,
            subscription_id=tenant.subscription_id,
            resource_group=tenant.resource_group,
            allowed_models=list(tenant.allowed_models or []),
            principal_id=tenant.principal_id,
            metadata=tenant.metadata_ or {},
            created_at=tenant.created_at,
            updated_at=tenant.updated_at,
            deleted_at=tenant.deleted_at,
        )


class TenantOnboarder:
    """
    Drives onboarding from a sequence of tenant configs.

    One parameterized pass per config replaces per-tenant wiring.
    """

    def __init__(
        self,
        session: AsyncSession,
        allocator: Optional[NamingAllocator] = None,
    ) -> None:
        self.session = session
        self.allocator = allocator or NamingAllocator()
        self.tenants = TenantService(session)

    async def onboard(self, configs: list[TenantConfig], actor: str) -> list[OnboardResult]:
        """Onboard every config in order. Stops at the first failure."""
        results = []
        for config in configs:
            results.append(await self.onboard_one(config, actor))
        return results

    async def onboard_one(self, config: TenantConfig, actor: str) -> OnboardResult:
        unique_name = self.allocator.allocate(config, config.name_prefix or config.display_name)
        tenant, created = await self._upsert_tenant(unique_name, config)

        if tenant.principal_id:
            await self.tenants.access.ensure_grant(
                principal_id=tenant.principal_id,
                principal_type=PrincipalType.SERVICE_IDENTITY,
                resource_scope=tenant_scope(tenant.unique_name),
                capability=Capability.INVOKE_OWN_RESOURCES,
                granted_by=actor,
            )

        connection = None
        if config.attach_gateway:
            active = await self.tenants.connection_repo.list_by_tenant(tenant.id)
            if not active:
                connection = await self.tenants.broker.issue(
                    tenant.id,
                    config.connection_models
                    if config.connection_models is not None
                    else list(tenant.allowed_models),
                )

        logger.info(
            "Tenant onboarded" if created else "Tenant onboarding converged",
            tenant=tenant.unique_name,
            connection_issued=connection is not None,
        )
        return OnboardResult(
            tenant=self.tenants._to_response(tenant),
            created=created,
            connection=connection,
        )

    async def _upsert_tenant(self, unique_name: str, config: TenantConfig) -> tuple[Tenant, bool]:
        """
        Create the tenant for a seed, or converge the one it already has.

        A seed keeps the name it was first allocated even when the display
        name changes later. An explicit name_prefix that would allocate a
        different name is a conflict, as is an allocated name held by
        another seed.
        """
        subscription_id = config.subscription_id.strip().lower()
        resource_group = config.resource_group.strip().lower()
        allowed_models = dedupe_preserving_order(config.allowed_models)

        tenant = await self.tenants.repo.get_by_seed(subscription_id, resource_group)
        if tenant is None:
            holder = await self.tenants.repo.get_by_unique_name(unique_name, include_deleted=True)
            if holder is not None:
                raise ConflictError(
                    f"Name '{unique_name}' is already allocated to another tenant",
                    details={"unique_name": unique_name},
                )
            tenant = await self.tenants.repo.create(
                unique_name=unique_name,
                display_name=config.display_name,
                subscription_id=subscription_id,
                resource_group=resource_group,
                allowed_models=allowed_models,
                principal_id=config.principal_id,
                metadata_=config.metadata,
            )
            return tenant, True

        if config.name_prefix is not None and tenant.unique_name != unique_name:
            raise ConflictError(
                f"Seed is already allocated as '{tenant.unique_name}'",
                details={"unique_name": tenant.unique_name, "requested": unique_name},
            )

        created = tenant.is_deleted
        tenant.deleted_at = None
        tenant.display_name = config.display_name
        tenant.allowed_models = allowed_models
        if config.principal_id is not None:
            tenant.principal_id = config.principal_id
        tenant.metadata_ = config.metadata
        await self.session.flush()
        return tenant, created
