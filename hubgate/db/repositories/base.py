"""
Base Repository

Shared plumbing for the HubGate repositories.

Repositories only flush. The request-scoped session from get_db() owns the
transaction: a registration that upserts a model, upserts a deployment,
supersedes a rule and writes a grant commits or rolls back as one unit.

Rows here are rarely deleted. Tenants are soft-deleted, connections and
grants are revoked in place, rules are superseded. So the base class offers
lookup and insert only; each repository adds its own lifecycle writes.

    class TenantRepository(BaseRepository[Tenant]):
        def __init__(self, session: AsyncSession):
            super().__init__(Tenant, session)
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.models.base import Base


ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Lookup by primary key and flush-on-insert.

    Attributes:
        model: The SQLAlchemy model class
        session: The request's async session
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get(self, entity_id: UUID) -> ModelType | None:
        """Get a row by id, soft-deleted and revoked rows included."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> ModelType:
        """
        Insert a row and flush it.

        The refresh loads server defaults so the instance can be rendered
        into a response inside the same transaction.
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance
