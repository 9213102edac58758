"""
Naming Endpoints

Preview the unique name a tenant context allocates, without writing anything.
"""

from fastapi import APIRouter

from hubgate.control_plane.api.dependencies import CurrentCaller
from hubgate.control_plane.services.naming_service import NamingAllocator
from hubgate.schemas.naming import AllocateRequest, AllocateResponse


router = APIRouter()


@router.post(
    "/allocate",
    response_model=AllocateResponse,
    summary="Allocate name",
    description="Deterministic: the same context and prefix always give the same name.",
)
async def allocate_name(
    data: AllocateRequest,
    _current_principal: CurrentCaller,
) -> AllocateResponse:
    return NamingAllocator().describe(data, data.prefix)
