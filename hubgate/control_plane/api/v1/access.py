"""
Access Policy Endpoints

Grant, check and revoke capabilities on resource scopes, and read the grant
ledger. Grant authorization itself lives in AccessPolicyService.
"""

from fastapi import APIRouter, status

from hubgate.config.constants import HUB_SCOPE, Capability
from hubgate.control_plane.api.dependencies import CurrentCaller, DbSession
from hubgate.control_plane.api.utils import validate_uuid
from hubgate.control_plane.services.access_service import AccessPolicyService
from hubgate.schemas.access import (
    AccessGrantResponse,
    CheckRequest,
    CheckResponse,
    GrantHistoryResponse,
    GrantRequest,
)


router = APIRouter()


@router.post(
    "/grants",
    response_model=AccessGrantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Grant capability",
    description=(
        "Grant a capability on a scope. Granting an identical active grant "
        "returns the existing one."
    ),
)
async def grant_capability(
    data: GrantRequest,
    current_principal: CurrentCaller,
    db: DbSession,
) -> AccessGrantResponse:
    service = AccessPolicyService(db)
    return await service.grant(
        grantor=current_principal,
        principal_id=data.principal_id,
        principal_type=data.principal_type,
        resource_scope=data.resource_scope,
        capability=data.capability,
    )


@router.post(
    "/check",
    response_model=CheckResponse,
    summary="Check capability",
    description="Whether a principal holds a capability on a scope, now or at as_of.",
)
async def check_capability(
    data: CheckRequest,
    current_principal: CurrentCaller,
    db: DbSession,
) -> CheckResponse:
    """Principals may check themselves; checking others needs manage-access."""
    service = AccessPolicyService(db)
    if data.principal_id != current_principal.id:
        await service.require(current_principal.id, data.resource_scope, Capability.MANAGE_ACCESS)

    allowed = await service.check(
        data.principal_id,
        data.resource_scope,
        data.capability,
        as_of=data.as_of,
    )
    return CheckResponse(
        allowed=allowed,
        principal_id=data.principal_id,
        resource_scope=data.resource_scope,
        capability=data.capability,
        as_of=data.as_of,
    )


@router.post(
    "/grants/{grant_id}/revoke",
    response_model=AccessGrantResponse,
    summary="Revoke grant",
)
async def revoke_grant(
    grant_id: str,
    current_principal: CurrentCaller,
    db: DbSession,
) -> AccessGrantResponse:
    service = AccessPolicyService(db)
    return await service.revoke(validate_uuid(grant_id, "grant_id"), actor=current_principal)


@router.get(
    "/principals/{principal_id}/grants",
    response_model=GrantHistoryResponse,
    summary="Grant history",
    description="Every grant a principal ever held, revoked ones included.",
)
async def get_grant_history(
    principal_id: str,
    current_principal: CurrentCaller,
    db: DbSession,
) -> GrantHistoryResponse:
    service = AccessPolicyService(db)
    if principal_id != current_principal.id:
        await service.require(current_principal.id, HUB_SCOPE, Capability.MANAGE_ACCESS)
    return await service.history(principal_id)
