"""
Model Registry Repositories

Database operations for LogicalModel, PhysicalDeployment and RoutingRule.

Resolve Snapshot:
=================
The router must never see a half-applied registry change. ``snapshot()``
reads the model, its active explicit rule and the active default rule of its
format (each with its deployment) in ONE SELECT, so all five rows come from
the same database snapshot:

    SELECT m.*, r.*, d.*, dr.*, dd.*
    FROM logical_models m
    LEFT JOIN routing_rules r   ON r.logical_model_id = m.id AND r.superseded_at IS NULL
    LEFT JOIN physical_deployments d  ON d.id = r.physical_deployment_id
    LEFT JOIN routing_rules dr  ON dr.model_format = m.format AND dr.is_default
                               AND dr.superseded_at IS NULL
    LEFT JOIN physical_deployments dd ON dd.id = dr.physical_deployment_id
    WHERE m.name = :name
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, joinedload

from hubgate.db.repositories.base import BaseRepository
from hubgate.models.logical_model import LogicalModel
from hubgate.models.physical_deployment import PhysicalDeployment
from hubgate.models.routing_rule import RoutingRule


@dataclass(frozen=True)
class RegistrySnapshot:
    """Rows read together for one Resolve."""

    model: LogicalModel
    rule: Optional[RoutingRule]
    deployment: Optional[PhysicalDeployment]
    default_rule: Optional[RoutingRule]
    default_deployment: Optional[PhysicalDeployment]


class LogicalModelRepository(BaseRepository[LogicalModel]):
    """Repository for LogicalModel database operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(LogicalModel, session)

    async def get_by_name(self, name: str) -> LogicalModel | None:
        result = await self.session.execute(
            select(LogicalModel).where(LogicalModel.name == name)
        )
        return result.scalar_one_or_none()

    async def get_registered_names(self, names: list[str]) -> set[str]:
        """
        Return the subset of names registered and not decommissioned.

        Args:
            names: Candidate logical model names

        Returns:
            Names present in the registry
        """
        if not names:
            return set()
        result = await self.session.execute(
            select(LogicalModel.name).where(
                LogicalModel.name.in_(names),
                LogicalModel.decommissioned_at.is_(None),
            )
        )
        return set(result.scalars().all())

    async def list_all(self, *, include_decommissioned: bool = False) -> list[LogicalModel]:
        query = select(LogicalModel).order_by(LogicalModel.name.asc())
        if not include_decommissioned:
            query = query.where(LogicalModel.decommissioned_at.is_(None))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def snapshot(self, name: str) -> RegistrySnapshot | None:
        """Read everything Resolve needs for one model in a single statement."""
        rule = aliased(RoutingRule)
        deployment = aliased(PhysicalDeployment)
        default_rule = aliased(RoutingRule)
        default_deployment = aliased(PhysicalDeployment)

        stmt = (
            select(LogicalModel, rule, deployment, default_rule, default_deployment)
            .outerjoin(
                rule,
                and_(
                    rule.logical_model_id == LogicalModel.id,
                    rule.superseded_at.is_(None),
                ),
            )
            .outerjoin(deployment, deployment.id == rule.physical_deployment_id)
            .outerjoin(
                default_rule,
                and_(
                    default_rule.model_format == LogicalModel.format,
                    default_rule.is_default.is_(True),
                    default_rule.superseded_at.is_(None),
                ),
            )
            .outerjoin(
                default_deployment,
                default_deployment.id == default_rule.physical_deployment_id,
            )
            .where(LogicalModel.name == name)
            .execution_options(populate_existing=True)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None
        return RegistrySnapshot(*row)


class PhysicalDeploymentRepository(BaseRepository[PhysicalDeployment]):
    """Repository for PhysicalDeployment database operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(PhysicalDeployment, session)

    async def get_by_backend_id(self, backend_id: str) -> PhysicalDeployment | None:
        result = await self.session.execute(
            select(PhysicalDeployment).where(PhysicalDeployment.backend_id == backend_id)
        )
        return result.scalar_one_or_none()


class RoutingRuleRepository(BaseRepository[RoutingRule]):
    """
    Repository for RoutingRule database operations.

    Rules are superseded, never updated in place.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(RoutingRule, session)

    async def get_active_for_model(self, logical_model_id) -> RoutingRule | None:
        result = await self.session.execute(
            select(RoutingRule)
            .options(joinedload(RoutingRule.deployment))
            .where(
                RoutingRule.logical_model_id == logical_model_id,
                RoutingRule.superseded_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def get_active_default(self, model_format: str) -> RoutingRule | None:
        result = await self.session.execute(
            select(RoutingRule)
            .options(joinedload(RoutingRule.deployment))
            .where(
                RoutingRule.model_format == model_format,
                RoutingRule.is_default.is_(True),
                RoutingRule.superseded_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def list_active(self) -> list[RoutingRule]:
        result = await self.session.execute(
            select(RoutingRule)
            .options(
                joinedload(RoutingRule.deployment),
                joinedload(RoutingRule.logical_model),
            )
            .where(RoutingRule.superseded_at.is_(None))
            .order_by(RoutingRule.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_history(self, logical_model_id) -> list[RoutingRule]:
        """Every rule ever written for a model, newest first."""
        result = await self.session.execute(
            select(RoutingRule)
            .options(joinedload(RoutingRule.deployment))
            .where(RoutingRule.logical_model_id == logical_model_id)
            .order_by(RoutingRule.created_at.desc())
        )
        return list(result.scalars().all())

    async def supersede(self, rule: RoutingRule) -> None:
        """
        Retire an active rule.

        Flushed before the replacement is inserted so the partial unique
        index never sees two active rows.
        """
        await self.session.execute(
            update(RoutingRule)
            .where(RoutingRule.id == rule.id, RoutingRule.superseded_at.is_(None))
            .values(superseded_at=datetime.now(UTC))
        )
        await self.session.flush()
        await self.session.refresh(rule)
