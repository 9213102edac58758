"""
Tenant Management Endpoints

Onboarding, lookup and deprovisioning of spoke tenants.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from hubgate.config.constants import Capability
from hubgate.control_plane.api.dependencies import CurrentCaller, DbSession, TenantManager
from hubgate.control_plane.api.utils import require_on_tenant, validate_uuid
from hubgate.control_plane.services.tenant_service import TenantOnboarder, TenantService
from hubgate.schemas.common import PaginatedResponse, PaginationMeta, PaginationParams
from hubgate.schemas.tenant import (
    DeprovisionResponse,
    OnboardRequest,
    OnboardResponse,
    TenantResponse,
    TenantUpdate,
)


router = APIRouter()


# =============================================================================
# TENANT ENDPOINTS
# =============================================================================


@router.get(
    "",
    response_model=PaginatedResponse[TenantResponse],
    summary="List tenants",
    description="List active tenants with pagination.",
)
async def list_tenants(
    _current_principal: TenantManager,
    db: DbSession,
    pagination: Annotated[PaginationParams, Depends()],
) -> PaginatedResponse[TenantResponse]:
    """List active tenants (manage-access on the hub)."""
    service = TenantService(db)
    tenants, total = await service.list_tenants(
        offset=pagination.offset,
        limit=pagination.limit,
    )

    return PaginatedResponse[TenantResponse](
        data=tenants,
        pagination=PaginationMeta.create(
            page=pagination.page, per_page=pagination.per_page, total=total
        ),
    )


@router.post(
    "/onboard",
    response_model=OnboardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Onboard tenants",
    description=(
        "Allocate names, upsert tenants, grant their service identities and "
        "optionally issue gateway connections. Re-running a config converges."
    ),
)
async def onboard_tenants(
    data: OnboardRequest,
    current_principal: TenantManager,
    db: DbSession,
) -> OnboardResponse:
    """Onboard a batch of tenant configs.

    Args:
        data: Tenant configs, processed in order
        current_principal: Caller (must hold manage-access on the hub)
        db: Database session

    Returns:
        One result per config; connection keys appear only here
    """
    onboarder = TenantOnboarder(db)
    results = await onboarder.onboard(data.tenants, actor=current_principal.id)
    return OnboardResponse(results=results)


@router.get(
    "/{tenant_id}",
    response_model=TenantResponse,
    summary="Get tenant",
)
async def get_tenant(
    tenant_id: str,
    current_principal: CurrentCaller,
    db: DbSession,
) -> TenantResponse:
    """Get a tenant. Its own principal, or manage-access on its scope."""
    service = TenantService(db)
    tenant = await service.get(validate_uuid(tenant_id, "tenant_id"))
    if tenant.principal_id != current_principal.id:
        await require_on_tenant(db, current_principal, tenant.unique_name, Capability.MANAGE_ACCESS)
    return tenant


@router.patch(
    "/{tenant_id}",
    response_model=TenantResponse,
    summary="Update tenant",
)
async def update_tenant(
    tenant_id: str,
    data: TenantUpdate,
    _current_principal: TenantManager,
    db: DbSession,
) -> TenantResponse:
    """Update display name, allowed models, principal or metadata."""
    service = TenantService(db)
    return await service.update(validate_uuid(tenant_id, "tenant_id"), data)


@router.post(
    "/{tenant_id}/deprovision",
    response_model=DeprovisionResponse,
    summary="Deprovision tenant",
    description="Revoke every connection and grant of the tenant, then soft-delete it.",
)
async def deprovision_tenant(
    tenant_id: str,
    current_principal: TenantManager,
    db: DbSession,
) -> DeprovisionResponse:
    """Deprovision a tenant."""
    service = TenantService(db)
    return await service.deprovision(
        validate_uuid(tenant_id, "tenant_id"), actor=current_principal.id
    )
