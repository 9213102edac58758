"""
Model Registry Endpoints

Register logical models against physical deployments, manage format
default routes, and inspect or retire what is registered.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from hubgate.control_plane.api.dependencies import CurrentCaller, DbSession, DeploymentManager
from hubgate.control_plane.services.provisioning_service import (
    ProvisioningClient,
    ProvisioningService,
)
from hubgate.control_plane.services.registry_service import ModelRegistryService
from hubgate.schemas.provisioning import ProvisionRequest
from hubgate.schemas.registry import (
    DefaultRouteRequest,
    LogicalModelResponse,
    PhysicalDeploymentResponse,
    RegisterRequest,
    RegisterResponse,
    ResolvedRouteResponse,
    RoutingRuleResponse,
)


router = APIRouter()


def get_provisioning_client() -> ProvisioningClient:
    """Client for the external provisioning engine (overridable in tests)."""
    return ProvisioningClient()


# =============================================================================
# REGISTRATION
# =============================================================================


@router.post(
    "",
    response_model=RegisterResponse,
    summary="Register model",
    description=(
        "Upsert a logical model and its physical deployment and make the pair "
        "the model's active routing rule. Identical re-registration is a no-op."
    ),
)
async def register_model(
    data: RegisterRequest,
    current_principal: DeploymentManager,
    db: DbSession,
) -> RegisterResponse:
    """Register a logical model (manage-deployments on the hub)."""
    service = ModelRegistryService(db)
    return await service.register(data, actor=current_principal.id)


@router.post(
    "/defaults",
    response_model=RegisterResponse,
    summary="Register format default route",
    description="Route every model of a format that has no explicit rule.",
)
async def register_default_route(
    data: DefaultRouteRequest,
    current_principal: DeploymentManager,
    db: DbSession,
) -> RegisterResponse:
    service = ModelRegistryService(db)
    return await service.register_default(data, actor=current_principal.id)


@router.post(
    "/provision",
    response_model=RegisterResponse,
    summary="Provision and register",
    description=(
        "Submit the deployment to the provisioning engine, wait for it, then "
        "register the resulting endpoint."
    ),
)
async def provision_model(
    data: ProvisionRequest,
    current_principal: DeploymentManager,
    db: DbSession,
    client: Annotated[ProvisioningClient, Depends(get_provisioning_client)],
) -> RegisterResponse:
    service = ProvisioningService(db, client=client)
    return await service.provision_and_register(data, actor=current_principal.id)


# =============================================================================
# QUERIES
# =============================================================================


@router.get(
    "",
    response_model=list[LogicalModelResponse],
    summary="List models",
)
async def list_models(
    _current_principal: CurrentCaller,
    db: DbSession,
    include_decommissioned: Annotated[bool, Query()] = False,
) -> list[LogicalModelResponse]:
    service = ModelRegistryService(db)
    return await service.list_models(include_decommissioned=include_decommissioned)


@router.get(
    "/rules",
    response_model=list[RoutingRuleResponse],
    summary="List active routing rules",
)
async def list_rules(
    _current_principal: DeploymentManager,
    db: DbSession,
) -> list[RoutingRuleResponse]:
    service = ModelRegistryService(db)
    return await service.list_rules()


@router.get(
    "/{name}/resolve",
    response_model=ResolvedRouteResponse,
    summary="Resolve model",
    description="The endpoint, auth scope and region a request for this model would use.",
)
async def resolve_model(
    name: str,
    _current_principal: CurrentCaller,
    db: DbSession,
) -> ResolvedRouteResponse:
    service = ModelRegistryService(db)
    route = await service.resolve(name)
    return route.to_response()


@router.get(
    "/{name}/rules",
    response_model=list[RoutingRuleResponse],
    summary="Routing rule history",
    description="Every rule ever written for the model, newest first.",
)
async def get_rule_history(
    name: str,
    _current_principal: DeploymentManager,
    db: DbSession,
) -> list[RoutingRuleResponse]:
    service = ModelRegistryService(db)
    return await service.rule_history(name)


# =============================================================================
# DECOMMISSION
# =============================================================================


@router.post(
    "/{name}/decommission",
    response_model=LogicalModelResponse,
    summary="Decommission model",
)
async def decommission_model(
    name: str,
    _current_principal: DeploymentManager,
    db: DbSession,
) -> LogicalModelResponse:
    service = ModelRegistryService(db)
    return await service.decommission(name)


@router.post(
    "/deployments/{backend_id}/decommission",
    response_model=PhysicalDeploymentResponse,
    summary="Decommission deployment",
)
async def decommission_deployment(
    backend_id: str,
    _current_principal: DeploymentManager,
    db: DbSession,
) -> PhysicalDeploymentResponse:
    service = ModelRegistryService(db)
    return await service.decommission_deployment(backend_id)
