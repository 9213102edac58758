"""
Access Grant Repository

Database operations for the AccessGrant ledger.

Scope Matching:
===============
A grant on a scope covers every descendant scope. Checking
"/hub/deployments/gpt4o-eus" therefore looks for grants on any of:

    /hub/deployments/gpt4o-eus
    /hub/deployments
    /hub
    /

which is a single ``resource_scope IN (...)`` lookup.
"""

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.core.utils import scope_ancestors
from hubgate.db.repositories.base import BaseRepository
from hubgate.models.access_grant import AccessGrant


class AccessGrantRepository(BaseRepository[AccessGrant]):
    """Repository for AccessGrant database operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(AccessGrant, session)

    async def find_covering(
        self,
        principal_id: str,
        resource_scope: str,
        capability: str,
        *,
        include_revoked: bool = False,
    ) -> list[AccessGrant]:
        """
        Get grants of a capability to a principal on a scope or any ancestor.

        Args:
            principal_id: Principal to check
            resource_scope: Normalized target scope
            capability: Capability value
            include_revoked: Also return revoked rows (for point-in-time checks)

        Returns:
            Matching ledger rows, oldest first
        """
        query = select(AccessGrant).where(
            AccessGrant.principal_id == principal_id,
            AccessGrant.capability == capability,
            AccessGrant.resource_scope.in_(scope_ancestors(resource_scope)),
        )
        if not include_revoked:
            query = query.where(AccessGrant.revoked_at.is_(None))
        query = query.order_by(AccessGrant.granted_at.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_active_exact(
        self,
        principal_id: str,
        resource_scope: str,
        capability: str,
    ) -> AccessGrant | None:
        """Get the active grant on exactly this scope, if one exists."""
        result = await self.session.execute(
            select(AccessGrant).where(
                AccessGrant.principal_id == principal_id,
                AccessGrant.resource_scope == resource_scope,
                AccessGrant.capability == capability,
                AccessGrant.revoked_at.is_(None),
            )
        )
        return result.scalars().first()

    async def get_principal_type(self, principal_id: str) -> str | None:
        """Type recorded for a principal by any earlier grant."""
        result = await self.session.execute(
            select(AccessGrant.principal_type)
            .where(AccessGrant.principal_id == principal_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_principal(
        self,
        principal_id: str,
        *,
        include_revoked: bool = True,
    ) -> list[AccessGrant]:
        """Ledger rows for a principal, oldest first."""
        query = select(AccessGrant).where(AccessGrant.principal_id == principal_id)
        if not include_revoked:
            query = query.where(AccessGrant.revoked_at.is_(None))
        query = query.order_by(AccessGrant.granted_at.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def revoke(self, grant: AccessGrant, revoked_by: str) -> AccessGrant:
        """
        Stamp revocation columns once.

        Already-revoked grants are returned unchanged.
        """
        if grant.revoked_at is not None:
            return grant

        grant.revoked_at = datetime.now(UTC)
        grant.revoked_by = revoked_by
        await self.session.flush()
        await self.session.refresh(grant)
        return grant
