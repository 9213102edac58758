"""
Access Policy Service

Grants and checks coarse capabilities on hierarchical resource scopes.

Grant Authorization:
====================
Evaluated in this order for grant(grantor, principal, scope, capability):

    1. ServiceIdentity granting to ITSELF a capability that is not
       self-grantable                         → UnauthorizedError (always)
    2. Self-grant of a self-grantable capability
       on the grantor's own tenant scope      → allowed
    3. Grantor is a hub admin, or holds manage-access
       on the scope or an ancestor            → allowed
    4. Anything else                          → UnauthorizedError

Rule 1 runs before rule 3 on purpose: a spoke's automation holding
manage-access on its tenant scope still cannot widen its own access.

Ledger:
=======
Grants are rows, never edited except for one revocation stamp. check()
with ``as_of`` replays the ledger for a past instant.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.constants import (
    SELF_GRANTABLE_CAPABILITIES,
    Capability,
    PrincipalType,
    tenant_scope,
)
from hubgate.config.settings import settings
from hubgate.core.exceptions import (
    ConstraintViolationError,
    GrantNotFoundError,
    UnauthorizedError,
)
from hubgate.core.logging import logger
from hubgate.core.utils import ensure_utc, normalize_scope, scope_ancestors
from hubgate.db.repositories import AccessGrantRepository, TenantRepository
from hubgate.models.access_grant import AccessGrant
from hubgate.schemas.access import AccessGrantResponse, GrantHistoryResponse
from hubgate.schemas.auth import CurrentPrincipal


def is_hub_admin(principal_id: str) -> bool:
    """Bootstrap principals configured in HUB_ADMIN_PRINCIPALS."""
    return principal_id in settings.HUB_ADMIN_PRINCIPALS


class AccessPolicyService:
    """Service for capability grants and checks."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = AccessGrantRepository(session)
        self.tenant_repo = TenantRepository(session)

    # ═══════════════════════════════════════════════════════════════════════════
    # CHECK
    # ═══════════════════════════════════════════════════════════════════════════

    async def check(
        self,
        principal_id: str,
        resource_scope: str,
        capability: Capability,
        as_of: Optional[datetime] = None,
    ) -> bool:
        """
        Whether a principal holds a capability on a scope.

        Args:
            principal_id: Principal to check
            resource_scope: Target scope; grants on ancestors also count
            capability: Capability to check
            as_of: Answer for this past instant instead of now

        Returns:
            True if an effective grant covers the scope
        """
        if is_hub_admin(principal_id):
            return True

        scope = normalize_scope(resource_scope)
        capability = Capability(capability)

        if as_of is None:
            grants = await self.repo.find_covering(principal_id, scope, capability.value)
            return bool(grants)

        instant = ensure_utc(as_of)
        grants = await self.repo.find_covering(
            principal_id, scope, capability.value, include_revoked=True
        )
        return any(grant.effective_at(instant) for grant in grants)

    async def require(
        self,
        principal_id: str,
        resource_scope: str,
        capability: Capability,
    ) -> None:
        """Raise UnauthorizedError unless check() passes."""
        if not await self.check(principal_id, resource_scope, capability):
            logger.info(
                "Access denied",
                principal_id=principal_id,
                resource_scope=resource_scope,
                capability=Capability(capability).value,
            )
            raise UnauthorizedError(
                f"Principal lacks '{Capability(capability).value}' on {resource_scope}",
                details={
                    "principal_id": principal_id,
                    "resource_scope": resource_scope,
                    "capability": Capability(capability).value,
                },
            )

    # ═══════════════════════════════════════════════════════════════════════════
    # GRANT
    # ═══════════════════════════════════════════════════════════════════════════

    async def grant(
        self,
        grantor: CurrentPrincipal,
        principal_id: str,
        principal_type: PrincipalType,
        resource_scope: str,
        capability: Capability,
    ) -> AccessGrantResponse:
        """
        Grant a capability on behalf of an authenticated grantor.

        Raises:
            UnauthorizedError: If the grantor may not issue this grant
            ConstraintViolationError: If the principal id is bound to another type
        """
        scope = normalize_scope(resource_scope)
        capability = Capability(capability)
        is_self = grantor.id == principal_id

        if (
            is_self
            and grantor.type == PrincipalType.SERVICE_IDENTITY
            and capability not in SELF_GRANTABLE_CAPABILITIES
        ):
            logger.warning(
                "Blocked self-grant of non-self-grantable capability",
                principal_id=principal_id,
                capability=capability.value,
                resource_scope=scope,
            )
            raise UnauthorizedError(
                f"A service identity cannot grant '{capability.value}' to itself",
                details={"principal_id": principal_id, "capability": capability.value},
            )

        allowed = False
        if is_self and capability in SELF_GRANTABLE_CAPABILITIES:
            allowed = await self._owns_tenant_scope(grantor.id, scope)
        if not allowed:
            allowed = grantor.is_hub_admin or await self.check(
                grantor.id, scope, Capability.MANAGE_ACCESS
            )
        if not allowed:
            raise UnauthorizedError(
                f"Granting on {scope} requires '{Capability.MANAGE_ACCESS.value}'",
                details={"grantor": grantor.id, "resource_scope": scope},
            )

        grant = await self._write_grant(
            principal_id=principal_id,
            principal_type=PrincipalType(principal_type),
            scope=scope,
            capability=capability,
            granted_by=grantor.id,
            granted_by_type=PrincipalType(grantor.type),
        )
        return self._to_response(grant)

    async def ensure_grant(
        self,
        principal_id: str,
        principal_type: PrincipalType,
        resource_scope: str,
        capability: Capability,
        granted_by: str,
        granted_by_type: PrincipalType = PrincipalType.SERVICE_IDENTITY,
    ) -> AccessGrant:
        """
        Write a grant as part of a system operation (registration, onboarding).

        The calling endpoint has already authorized the operation; no grantor
        check runs here. Idempotent like grant().
        """
        return await self._write_grant(
            principal_id=principal_id,
            principal_type=PrincipalType(principal_type),
            scope=normalize_scope(resource_scope),
            capability=Capability(capability),
            granted_by=granted_by,
            granted_by_type=PrincipalType(granted_by_type),
        )

    async def _write_grant(
        self,
        principal_id: str,
        principal_type: PrincipalType,
        scope: str,
        capability: Capability,
        granted_by: str,
        granted_by_type: PrincipalType,
    ) -> AccessGrant:
        known_type = await self.repo.get_principal_type(principal_id)
        if known_type is not None and known_type != principal_type.value:
            raise ConstraintViolationError(
                f"Principal '{principal_id}' is a {known_type}, not a {principal_type.value}",
                details={"principal_id": principal_id, "principal_type": known_type},
            )

        existing = await self.repo.get_active_exact(principal_id, scope, capability.value)
        if existing:
            return existing

        grant = await self.repo.create(
            principal_id=principal_id,
            principal_type=principal_type.value,
            resource_scope=scope,
            capability=capability.value,
            granted_by=granted_by,
            granted_by_type=granted_by_type.value,
        )
        logger.info(
            "Access granted",
            grant_id=str(grant.id),
            principal_id=principal_id,
            capability=capability.value,
            resource_scope=scope,
            granted_by=granted_by,
        )
        return grant

    async def _owns_tenant_scope(self, principal_id: str, scope: str) -> bool:
        """Whether scope is the principal's tenant scope or inside it."""
        parts = [part for part in scope.split("/") if part]
        if len(parts) < 2 or parts[0] != "tenants":
            return False
        tenant = await self.tenant_repo.get_by_unique_name(parts[1])
        if not tenant or tenant.principal_id != principal_id:
            return False
        return tenant_scope(tenant.unique_name) in scope_ancestors(scope)

    # ═══════════════════════════════════════════════════════════════════════════
    # REVOKE / HISTORY
    # ═══════════════════════════════════════════════════════════════════════════

    async def revoke(self, grant_id: UUID, actor: CurrentPrincipal) -> AccessGrantResponse:
        """
        Revoke a grant. Revoking an already-revoked grant is a no-op.

        A principal may always give up its own grants.

        Raises:
            GrantNotFoundError: If the grant does not exist
            UnauthorizedError: If the actor may not revoke it
        """
        grant = await self.repo.get(grant_id)
        if not grant:
            raise GrantNotFoundError(str(grant_id))

        if grant.principal_id != actor.id and not actor.is_hub_admin:
            await self.require(actor.id, grant.resource_scope, Capability.MANAGE_ACCESS)

        was_active = grant.is_active
        grant = await self.repo.revoke(grant, revoked_by=actor.id)
        if was_active:
            logger.info(
                "Access revoked",
                grant_id=str(grant.id),
                principal_id=grant.principal_id,
                revoked_by=actor.id,
            )
        return self._to_response(grant)

    async def revoke_all_for_principal(self, principal_id: str, revoked_by: str) -> int:
        """Revoke every active grant a principal holds. Returns how many."""
        grants = await self.repo.list_for_principal(principal_id, include_revoked=False)
        for grant in grants:
            await self.repo.revoke(grant, revoked_by=revoked_by)
        return len(grants)

    async def history(self, principal_id: str) -> GrantHistoryResponse:
        """Every grant row for a principal, revoked ones included."""
        grants = await self.repo.list_for_principal(principal_id, include_revoked=True)
        return GrantHistoryResponse(
            principal_id=principal_id,
            grants=[self._to_response(g) for g in grants],
        )

    def _to_response(self, grant: AccessGrant) -> AccessGrantResponse:
        return AccessGrantResponse(
            id=str(grant.id),
            principal_id=grant.principal_id,
            principal_type=grant.principal_type,
            resource_scope=grant.resource_scope,
            capability=grant.capability,
            granted_by=grant.granted_by,
            granted_at=grant.granted_at,
            revoked_at=grant.revoked_at,
            revoked_by=grant.revoked_by,
        )
