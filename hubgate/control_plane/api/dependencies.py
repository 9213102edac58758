"""
API Dependencies

Common dependencies for Control Plane APIs.

Callers authenticate with a bearer token naming a typed principal. What a
caller may do is decided by the access policy enforcer: each admin surface
requires one capability on a scope, and hub admins hold every capability.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.constants import HUB_SCOPE, Capability, PrincipalType
from hubgate.control_plane.services.access_service import AccessPolicyService, is_hub_admin
from hubgate.core.exceptions import UnauthenticatedError
from hubgate.core.security import decode_token
from hubgate.db.session import get_db
from hubgate.schemas.auth import CurrentPrincipal


# Security scheme for Swagger UI - shows "Authorize" button
security_scheme = HTTPBearer(auto_error=False)


async def get_current_principal_token(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(security_scheme)
    ],
) -> dict:
    """Extract and validate JWT token from Authorization header.

    Args:
        credentials: HTTP Bearer credentials from Authorization header

    Returns:
        Decoded token payload

    Raises:
        UnauthenticatedError: If token is missing or invalid
    """
    if not credentials:
        raise UnauthenticatedError("Authorization header required")

    payload = decode_token(credentials.credentials)

    if not payload or payload.get("type") != "access":
        raise UnauthenticatedError("Invalid or expired token")

    return payload


async def get_current_principal(
    token: Annotated[dict, Depends(get_current_principal_token)],
) -> CurrentPrincipal:
    """Build the typed principal the token speaks for.

    Raises:
        UnauthenticatedError: If the payload has no usable subject or type
    """
    principal_id = token.get("sub")
    principal_type = token.get("principal_type")

    if not principal_id or principal_type not in {t.value for t in PrincipalType}:
        raise UnauthenticatedError("Invalid token payload")

    return CurrentPrincipal(
        id=principal_id,
        type=PrincipalType(principal_type),
        is_hub_admin=is_hub_admin(principal_id),
    )


def require_capability(capability: Capability, resource_scope: str = HUB_SCOPE):
    """Dependency factory to require a capability on a fixed scope.

    Args:
        capability: Capability the caller must hold
        resource_scope: Scope it must hold it on (or on an ancestor)

    Returns:
        Dependency function
    """

    async def check_capability(
        current_principal: Annotated[CurrentPrincipal, Depends(get_current_principal)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> CurrentPrincipal:
        await AccessPolicyService(db).require(current_principal.id, resource_scope, capability)
        return current_principal

    return check_capability


# Type aliases for cleaner signatures
CurrentCaller = Annotated[CurrentPrincipal, Depends(get_current_principal)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
DeploymentManager = Annotated[
    CurrentPrincipal, Depends(require_capability(Capability.MANAGE_DEPLOYMENTS))
]
# Onboarding writes grants, so it needs manage-access on the hub
TenantManager = Annotated[
    CurrentPrincipal, Depends(require_capability(Capability.MANAGE_ACCESS))
]
