"""
Repository Layer

One repository per aggregate, all built on BaseRepository:

    ┌──────────────────────────────┬─────────────────────────────────────────┐
    │ Repository                   │ Responsibility                          │
    ├──────────────────────────────┼─────────────────────────────────────────┤
    │ TenantRepository             │ Spokes, lookup by allocated name/seed   │
    │ ConnectionRepository         │ Hash-based authentication, revocation   │
    │ LogicalModelRepository       │ Model catalog, single-SELECT snapshot   │
    │ PhysicalDeploymentRepository │ Backends by backend_id                  │
    │ RoutingRuleRepository        │ Active rules, supersede                 │
    │ AccessGrantRepository        │ Grant ledger, hierarchical scope match  │
    └──────────────────────────────┴─────────────────────────────────────────┘

Usage:
    async def authenticate(db: AsyncSession, key_hash: str):
        connection = await ConnectionRepository(db).get_valid_by_hash(key_hash)
        if not connection:
            raise UnauthenticatedError()
        return connection
"""

from hubgate.db.repositories.access_grant_repository import AccessGrantRepository
from hubgate.db.repositories.base import BaseRepository
from hubgate.db.repositories.connection_repository import ConnectionRepository
from hubgate.db.repositories.registry_repository import (
    LogicalModelRepository,
    PhysicalDeploymentRepository,
    RegistrySnapshot,
    RoutingRuleRepository,
)
from hubgate.db.repositories.tenant_repository import TenantRepository

__all__ = [
    "BaseRepository",
    "TenantRepository",
    "ConnectionRepository",
    "LogicalModelRepository",
    "PhysicalDeploymentRepository",
    "RoutingRuleRepository",
    "RegistrySnapshot",
    "AccessGrantRepository",
]
