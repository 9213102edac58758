"""
Connection Management Endpoints

Issue, rotate and revoke the credentials tenants present to the gateway.

The plain key is returned only by issue and rotate. Every operation needs
manage-connections on the owning tenant's scope.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.constants import Capability
from hubgate.control_plane.api.dependencies import CurrentCaller, DbSession
from hubgate.control_plane.api.utils import require_on_tenant, validate_uuid
from hubgate.control_plane.services.connection_service import ConnectionBrokerService
from hubgate.control_plane.services.tenant_service import TenantService
from hubgate.schemas.auth import CurrentPrincipal
from hubgate.schemas.common import PaginatedResponse, PaginationMeta
from hubgate.schemas.connection import (
    ConnectionCreatedResponse,
    ConnectionIssueRequest,
    ConnectionResponse,
    ConnectionRotateRequest,
)


router = APIRouter()


async def _authorize_tenant(
    db: AsyncSession,
    caller: CurrentPrincipal,
    tenant_id: UUID,
) -> None:
    tenant = await TenantService(db).get(tenant_id)
    await require_on_tenant(db, caller, tenant.unique_name, Capability.MANAGE_CONNECTIONS)


# =============================================================================
# PER-TENANT ENDPOINTS
# =============================================================================


@router.post(
    "/tenants/{tenant_id}/connections",
    response_model=ConnectionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue connection",
    description=(
        "Issue a gateway connection restricted to the requested models. "
        "The key is shown only in this response."
    ),
)
async def issue_connection(
    tenant_id: str,
    data: ConnectionIssueRequest,
    current_principal: CurrentCaller,
    db: DbSession,
) -> ConnectionCreatedResponse:
    """Issue a connection.

    Args:
        tenant_id: Owning tenant
        data: Requested models, name and optional gateway target
        current_principal: Caller (manage-connections on the tenant scope)
        db: Database session

    Returns:
        The connection with its plain key
    """
    tenant_uuid = validate_uuid(tenant_id, "tenant_id")
    await _authorize_tenant(db, current_principal, tenant_uuid)

    broker = ConnectionBrokerService(db)
    return await broker.issue(
        tenant_uuid,
        data.models,
        gateway_target=data.gateway_target,
        name=data.name,
    )


@router.get(
    "/tenants/{tenant_id}/connections",
    response_model=PaginatedResponse[ConnectionResponse],
    summary="List connections",
)
async def list_connections(
    tenant_id: str,
    current_principal: CurrentCaller,
    db: DbSession,
    include_revoked: Annotated[bool, Query()] = False,
) -> PaginatedResponse[ConnectionResponse]:
    tenant_uuid = validate_uuid(tenant_id, "tenant_id")
    await _authorize_tenant(db, current_principal, tenant_uuid)

    broker = ConnectionBrokerService(db)
    connections, total = await broker.list_by_tenant(tenant_uuid, include_revoked=include_revoked)
    return PaginatedResponse[ConnectionResponse](
        data=connections,
        pagination=PaginationMeta.single_page(total),
    )


# =============================================================================
# PER-CONNECTION ENDPOINTS
# =============================================================================


@router.get(
    "/connections/{connection_id}",
    response_model=ConnectionResponse,
    summary="Get connection",
)
async def get_connection(
    connection_id: str,
    current_principal: CurrentCaller,
    db: DbSession,
) -> ConnectionResponse:
    broker = ConnectionBrokerService(db)
    connection = await broker.get(validate_uuid(connection_id, "connection_id"))
    await _authorize_tenant(db, current_principal, UUID(connection.tenant_id))
    return connection


@router.post(
    "/connections/{connection_id}/rotate",
    response_model=ConnectionCreatedResponse,
    summary="Rotate connection key",
    description="Issue a new key for the same connection. The new key is shown only here.",
)
async def rotate_connection(
    connection_id: str,
    current_principal: CurrentCaller,
    db: DbSession,
    data: ConnectionRotateRequest | None = None,
) -> ConnectionCreatedResponse:
    connection_uuid = validate_uuid(connection_id, "connection_id")
    broker = ConnectionBrokerService(db)
    connection = await broker.get(connection_uuid)
    await _authorize_tenant(db, current_principal, UUID(connection.tenant_id))

    return await broker.rotate(
        connection_uuid,
        grace_seconds=data.grace_seconds if data else None,
    )


@router.post(
    "/connections/{connection_id}/revoke",
    response_model=ConnectionResponse,
    summary="Revoke connection",
    description="Permanently revoke a connection. Revoking twice is not an error.",
)
async def revoke_connection(
    connection_id: str,
    current_principal: CurrentCaller,
    db: DbSession,
) -> ConnectionResponse:
    connection_uuid = validate_uuid(connection_id, "connection_id")
    broker = ConnectionBrokerService(db)
    connection = await broker.get(connection_uuid)
    await _authorize_tenant(db, current_principal, UUID(connection.tenant_id))

    return await broker.revoke(connection_uuid)
