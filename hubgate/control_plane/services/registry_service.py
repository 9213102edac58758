"""
Model Registry Service

Maps logical model names to physical deployments through routing rules.

Register Flow:
==============
    validate policy ──► check region pinning ──► upsert model + deployment
        │
        ▼
    active rule identical? ──yes──► return it (created = False)
        │ no
        ▼
    supersede active rule ──► insert new rule ──► grant gateway invoke-model

A registration without a deployment only upserts the model and retires its
explicit rule, leaving it to the format default.

All writes share the request transaction, so a reader either sees the old
rule or the new one, never neither and never both.

Resolve:
========
One SELECT (see LogicalModelRepository.snapshot) returns the model, its
explicit rule and its format default. An explicit rule always wins, even
when its deployment is decommissioned.
"""

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.constants import (
    Capability,
    DeploymentStatus,
    PrincipalType,
    deployment_scope,
)
from hubgate.config.settings import settings
from hubgate.control_plane.services.access_service import AccessPolicyService
from hubgate.core.exceptions import (
    BackendUnavailableError,
    ConstraintViolationError,
    NotFoundError,
    UnknownModelError,
)
from hubgate.core.logging import logger
from hubgate.core.utils import fingerprint
from hubgate.db.repositories import (
    LogicalModelRepository,
    PhysicalDeploymentRepository,
    RoutingRuleRepository,
)
from hubgate.models.logical_model import LogicalModel
from hubgate.models.physical_deployment import PhysicalDeployment
from hubgate.models.routing_rule import RoutingRule
from hubgate.schemas.policy import (
    InjectDefaultParamStep,
    PolicyStep,
    RateLimitStep,
    SubstituteCredentialStep,
    default_policy,
    dump_policy,
    load_policy,
)
from hubgate.schemas.registry import (
    DefaultRouteRequest,
    LogicalModelResponse,
    PhysicalDeploymentResponse,
    PhysicalDeploymentSpec,
    RegisterRequest,
    RegisterResponse,
    ResolvedRoute,
    RoutingRuleResponse,
)


def validate_policy(steps: list[PolicyStep]) -> None:
    """
    Check a policy before it is attached to a rule.

    Raises:
        ConstraintViolationError: On any rule violation
    """
    substitutions = [s for s in steps if isinstance(s, SubstituteCredentialStep)]
    if len(substitutions) != 1:
        raise ConstraintViolationError(
            "Policy must contain exactly one SubstituteCredential step",
            details={"substitute_credential_steps": len(substitutions)},
        )

    seen_params: set[tuple[str, str]] = set()
    for index, step in enumerate(steps):
        if isinstance(step, RateLimitStep):
            if step.calls < 1 or step.window_seconds < 1:
                raise ConstraintViolationError(
                    "RateLimit calls and window_seconds must both be at least 1",
                    details={"step": index},
                )
        elif isinstance(step, InjectDefaultParamStep):
            key = (step.location, step.name)
            if key in seen_params:
                raise ConstraintViolationError(
                    f"Parameter '{step.name}' is injected more than once",
                    details={"step": index},
                )
            seen_params.add(key)


def allowed_regions_for(
    model_name: str,
    model_regions: Optional[list[str]],
) -> Optional[set[str]]:
    """
    Effective region set for a model, or None when unrestricted.

    The per-model list and the REGION_RESTRICTED_MODELS catalog are
    intersected when both exist.
    """
    catalog = settings.REGION_RESTRICTED_MODELS.get(model_name)
    sets = [
        {region.lower() for region in regions}
        for regions in (model_regions, catalog)
        if regions is not None
    ]
    if not sets:
        return None
    return set.intersection(*sets)


class ModelRegistryService:
    """Service for model registration and resolution."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.model_repo = LogicalModelRepository(session)
        self.deployment_repo = PhysicalDeploymentRepository(session)
        self.rule_repo = RoutingRuleRepository(session)
        self.access = AccessPolicyService(session)

    # ═══════════════════════════════════════════════════════════════════════════
    # REGISTER
    # ═══════════════════════════════════════════════════════════════════════════

    async def register(self, request: RegisterRequest, actor: str) -> RegisterResponse:
        """
        Bind a logical model to a physical deployment with a policy.

        Idempotent: an identical (deployment, policy, max_retries) returns the
        existing active rule. Without a deployment the model's explicit rule
        is retired and it resolves through its format default.

        Raises:
            ConstraintViolationError: Region pinning or policy violation
        """
        policy = request.policy if request.policy is not None else default_policy()
        validate_policy(policy)

        spec = request.model
        model = await self.model_repo.get_by_name(spec.name)
        if request.deployment is not None:
            self._check_placement(
                spec.name, spec.allowed_regions, model, request.deployment.region
            )

        model_created = model is None
        if model is None:
            model = await self.model_repo.create(
                name=spec.name,
                format=spec.format,
                version=spec.version,
                allowed_regions=spec.allowed_regions,
            )
        else:
            model.format = spec.format
            model.version = spec.version
            if spec.allowed_regions is not None:
                model.allowed_regions = spec.allowed_regions
            model.decommissioned_at = None
            await self.session.flush()

        active = await self.rule_repo.get_active_for_model(model.id)
        if request.deployment is None:
            if active is not None:
                await self.rule_repo.supersede(active)
            logger.info(
                "Model routed through format default",
                model=model.name,
                model_format=model.format,
            )
            return RegisterResponse(rule=None, created=active is not None or model_created)

        deployment = await self._upsert_deployment(request.deployment, model.name)

        rule, created = await self._replace_rule(
            active,
            deployment=deployment,
            policy=policy,
            max_retries=request.max_retries,
            logical_model_id=model.id,
        )
        await self._grant_gateway(deployment, actor)

        logger.info(
            "Model registered" if created else "Model registration unchanged",
            model=model.name,
            backend_id=deployment.backend_id,
            region=deployment.region,
            rule_id=str(rule.id),
        )
        return RegisterResponse(
            rule=self._rule_to_response(rule, deployment, model_name=model.name),
            created=created,
        )

    async def check_placement(
        self,
        name: str,
        allowed_regions: Optional[list[str]],
        region: str,
    ) -> None:
        """Fail fast on region pinning before any capacity is provisioned."""
        model = await self.model_repo.get_by_name(name)
        self._check_placement(name, allowed_regions, model, region)

    def _check_placement(
        self,
        name: str,
        allowed_regions: Optional[list[str]],
        model: Optional[LogicalModel],
        region: str,
    ) -> None:
        if allowed_regions is None and model is not None:
            allowed_regions = model.allowed_regions
        allowed = allowed_regions_for(name, allowed_regions)
        if allowed is not None and region.lower() not in allowed:
            raise ConstraintViolationError(
                f"Model '{name}' cannot be deployed to region '{region}'",
                details={
                    "model": name,
                    "region": region,
                    "allowed_regions": sorted(allowed),
                },
            )

    async def register_default(
        self,
        request: DefaultRouteRequest,
        actor: str,
    ) -> RegisterResponse:
        """Set the fallback route for models of one format."""
        policy = request.policy if request.policy is not None else default_policy()
        validate_policy(policy)

        deployment = await self._upsert_deployment(request.deployment, request.format)
        active = await self.rule_repo.get_active_default(request.format)

        rule, created = await self._replace_rule(
            active,
            deployment=deployment,
            policy=policy,
            max_retries=request.max_retries,
            model_format=request.format,
            is_default=True,
        )
        await self._grant_gateway(deployment, actor)

        logger.info(
            "Default route registered" if created else "Default route unchanged",
            model_format=request.format,
            backend_id=deployment.backend_id,
            rule_id=str(rule.id),
        )
        return RegisterResponse(
            rule=self._rule_to_response(rule, deployment),
            created=created,
        )

    async def _upsert_deployment(
        self,
        spec: PhysicalDeploymentSpec,
        default_name: str,
    ) -> PhysicalDeployment:
        values = {
            "deployment_name": spec.deployment_name or default_name,
            "region": spec.region,
            "capacity_units": spec.capacity_units,
            "endpoint_url": spec.endpoint_url.rstrip("/"),
            "auth_scope": spec.auth_scope,
            "status": DeploymentStatus.ACTIVE.value,
        }
        deployment = await self.deployment_repo.get_by_backend_id(spec.backend_id)
        if deployment is None:
            return await self.deployment_repo.create(backend_id=spec.backend_id, **values)

        for field, value in values.items():
            setattr(deployment, field, value)
        await self.session.flush()
        return deployment

    async def _replace_rule(
        self,
        active: Optional[RoutingRule],
        deployment: PhysicalDeployment,
        policy: list[PolicyStep],
        max_retries: int,
        **target,
    ) -> tuple[RoutingRule, bool]:
        policy_data = dump_policy(policy)
        policy_hash = fingerprint(policy_data)

        if (
            active is not None
            and active.physical_deployment_id == deployment.id
            and active.policy_hash == policy_hash
            and active.max_retries == max_retries
        ):
            return active, False

        if active is not None:
            await self.rule_repo.supersede(active)

        rule = await self.rule_repo.create(
            physical_deployment_id=deployment.id,
            policy=policy_data,
            policy_hash=policy_hash,
            max_retries=max_retries,
            **target,
        )
        return rule, True

    async def _grant_gateway(self, deployment: PhysicalDeployment, actor: str) -> None:
        await self.access.ensure_grant(
            principal_id=settings.GATEWAY_PRINCIPAL_ID,
            principal_type=PrincipalType.SERVICE_IDENTITY,
            resource_scope=deployment_scope(deployment.backend_id),
            capability=Capability.INVOKE_MODEL,
            granted_by=actor,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # RESOLVE
    # ═══════════════════════════════════════════════════════════════════════════

    async def resolve(self, name: str) -> ResolvedRoute:
        """
        Resolve a logical model to an immutable route.

        Raises:
            UnknownModelError: If the name was never registered
            BackendUnavailableError: If it resolves to nothing live
        """
        snapshot = await self.model_repo.snapshot(name)
        if snapshot is None:
            raise UnknownModelError([name])

        model = snapshot.model
        if model.is_decommissioned:
            raise BackendUnavailableError(name, reason="Model is decommissioned")

        if snapshot.rule is not None:
            rule, deployment, via_default = snapshot.rule, snapshot.deployment, False
        elif snapshot.default_rule is not None:
            rule, deployment, via_default = (
                snapshot.default_rule,
                snapshot.default_deployment,
                True,
            )
        else:
            raise BackendUnavailableError(name)

        if deployment is None or not deployment.is_active:
            raise BackendUnavailableError(name, reason="Deployment is decommissioned")

        return ResolvedRoute(
            rule_id=str(rule.id),
            model=model.name,
            model_format=model.format,
            backend_id=deployment.backend_id,
            deployment_name=deployment.deployment_name,
            endpoint=deployment.endpoint_url,
            auth_scope=deployment.auth_scope,
            region=deployment.region,
            policy=tuple(load_policy(rule.policy)),
            max_retries=rule.max_retries,
            via_default=via_default,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # DECOMMISSION
    # ═══════════════════════════════════════════════════════════════════════════

    async def decommission(self, name: str) -> LogicalModelResponse:
        """Retire a logical model; Resolve then reports BackendUnavailable."""
        model = await self.model_repo.get_by_name(name)
        if not model:
            raise NotFoundError("Logical model", name)
        if model.decommissioned_at is None:
            model.decommissioned_at = datetime.now(UTC)
            await self.session.flush()
            logger.info("Model decommissioned", model=name)
        return LogicalModelResponse.model_validate(model)

    async def decommission_deployment(self, backend_id: str) -> PhysicalDeploymentResponse:
        """Retire a backend; every rule targeting it stops resolving."""
        deployment = await self.deployment_repo.get_by_backend_id(backend_id)
        if not deployment:
            raise NotFoundError("Physical deployment", backend_id)
        if deployment.is_active:
            deployment.status = DeploymentStatus.DECOMMISSIONED.value
            await self.session.flush()
            logger.info("Deployment decommissioned", backend_id=backend_id)
        return PhysicalDeploymentResponse.model_validate(deployment)

    # ═══════════════════════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════════════════════

    async def list_models(self, include_decommissioned: bool = False) -> list[LogicalModelResponse]:
        models = await self.model_repo.list_all(include_decommissioned=include_decommissioned)
        return [LogicalModelResponse.model_validate(m) for m in models]

    async def list_rules(self) -> list[RoutingRuleResponse]:
        """Every active rule, explicit and default."""
        rules = await self.rule_repo.list_active()
        return [
            self._rule_to_response(
                rule,
                rule.deployment,
                model_name=rule.logical_model.name if rule.logical_model else None,
            )
            for rule in rules
        ]

    async def rule_history(self, name: str) -> list[RoutingRuleResponse]:
        """Every rule ever written for a model, newest first."""
        model = await self.model_repo.get_by_name(name)
        if not model:
            raise UnknownModelError([name])
        rules = await self.rule_repo.list_history(model.id)
        return [
            self._rule_to_response(rule, rule.deployment, model_name=model.name)
            for rule in rules
        ]

    def _rule_to_response(
        self,
        rule: RoutingRule,
        deployment: PhysicalDeployment,
        model_name: Optional[str] = None,
    ) -> RoutingRuleResponse:
        return RoutingRuleResponse(
            id=str(rule.id),
            model=model_name,
            model_format=rule.model_format,
            is_default=rule.is_default,
            deployment=PhysicalDeploymentResponse.model_validate(deployment),
            policy=load_policy(rule.policy),
            max_retries=rule.max_retries,
            active=rule.superseded_at is None,
            created_at=rule.created_at,
            superseded_at=rule.superseded_at,
        )
