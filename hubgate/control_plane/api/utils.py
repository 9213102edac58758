"""
API Utilities

Shared helper functions for API endpoints.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.constants import Capability, tenant_scope
from hubgate.control_plane.services.access_service import AccessPolicyService
from hubgate.core.exceptions import ValidationError
from hubgate.schemas.auth import CurrentPrincipal


def validate_uuid(value: str, field_name: str) -> UUID:
    """
    Validate and convert a string to UUID.

    Args:
        value: String value to convert
        field_name: Field name for error message

    Returns:
        UUID object

    Raises:
        ValidationError: If value is not a valid UUID (400 Bad Request)

    Example:
        tenant_uuid = validate_uuid(tenant_id, "tenant_id")
    """
    try:
        return UUID(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid {field_name}: must be a valid UUID",
            details={field_name: value},
        ) from e


async def require_on_tenant(
    db: AsyncSession,
    caller: CurrentPrincipal,
    unique_name: str,
    capability: Capability,
) -> None:
    """
    Require a capability on a tenant's scope (grants on /tenants also count).

    Raises:
        UnauthorizedError: If the caller lacks it

    Example:
        await require_on_tenant(db, caller, tenant.unique_name, Capability.MANAGE_CONNECTIONS)
    """
    await AccessPolicyService(db).require(caller.id, tenant_scope(unique_name), capability)
