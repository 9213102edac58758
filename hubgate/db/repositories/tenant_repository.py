"""
Tenant Repository

Database operations for the Tenant model.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.functions import count

from hubgate.db.repositories.base import BaseRepository
from hubgate.models.tenant import Tenant


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant database operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Tenant, session)

    async def get_active(self, tenant_id: UUID) -> Tenant | None:
        """Get a tenant that has not been deprovisioned."""
        result = await self.session.execute(
            select(Tenant).where(Tenant.id == tenant_id, Tenant.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def get_by_unique_name(
        self,
        unique_name: str,
        *,
        include_deleted: bool = False,
    ) -> Tenant | None:
        """Get a tenant by its allocated name."""
        query = select(Tenant).where(Tenant.unique_name == unique_name)
        if not include_deleted:
            query = query.where(Tenant.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_seed(
        self,
        subscription_id: str,
        resource_group: str,
    ) -> Tenant | None:
        """
        Get the tenant allocated from a (subscription, resource group) seed.

        Deprovisioned tenants are included; one seed maps to one row for life.
        Both parts are compared as stored (stripped, lower-cased).
        """
        result = await self.session.execute(
            select(Tenant).where(
                Tenant.subscription_id == subscription_id,
                Tenant.resource_group == resource_group,
            )
        )
        return result.scalar_one_or_none()

    async def list_active(self, *, offset: int = 0, limit: int = 100) -> list[Tenant]:
        """List tenants that have not been deprovisioned, by name."""
        result = await self.session.execute(
            select(Tenant)
            .where(Tenant.deleted_at.is_(None))
            .order_by(Tenant.unique_name.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_active(self) -> int:
        result = await self.session.execute(
            select(count(Tenant.id)).where(Tenant.deleted_at.is_(None))
        )
        return result.scalar() or 0
