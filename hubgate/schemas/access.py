"""
Access Policy Schemas

Request/response models for the access policy enforcer.

Capabilities are coarse names; ``provider_role`` on responses is the
boundary translation to the provider's role name and is informational only.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from hubgate.config.constants import CAPABILITY_PROVIDER_ROLES, Capability, PrincipalType
from hubgate.schemas.common import BaseSchema


class Principal(BaseModel):
    """A typed identity."""

    id: str = Field(..., min_length=1, max_length=255)
    type: PrincipalType


class GrantRequest(BaseModel):
    principal_id: str = Field(..., min_length=1, max_length=255)
    principal_type: PrincipalType
    resource_scope: str = Field(..., min_length=1, max_length=1024)
    capability: Capability


class CheckRequest(BaseModel):
    principal_id: str = Field(..., min_length=1, max_length=255)
    resource_scope: str = Field(..., min_length=1, max_length=1024)
    capability: Capability
    as_of: Optional[datetime] = Field(
        None, description="Answer for a past instant from the grant ledger"
    )


class CheckResponse(BaseModel):
    allowed: bool
    principal_id: str
    resource_scope: str
    capability: Capability
    as_of: Optional[datetime] = None


class AccessGrantResponse(BaseSchema):
    id: str
    principal_id: str
    principal_type: PrincipalType
    resource_scope: str
    capability: Capability
    granted_by: str
    granted_at: datetime
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None

    @computed_field
    @property
    def provider_role(self) -> str:
        return CAPABILITY_PROVIDER_ROLES[Capability(self.capability)]


class GrantHistoryResponse(BaseModel):
    principal_id: str
    grants: list[AccessGrantResponse]
