"""
Tenant Schemas

Request/response models for tenant onboarding and management.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from hubgate.schemas.common import BaseSchema
from hubgate.schemas.connection import ConnectionCreatedResponse


class TenantContext(BaseModel):
    """
    Stable seed a tenant's unique name is derived from.

    The same (subscription_id, resource_group) always allocates the same name.
    """

    subscription_id: str = Field(..., min_length=1, max_length=100)
    resource_group: str = Field(..., min_length=1, max_length=100)

    def seed(self) -> str:
        return f"{self.subscription_id.strip().lower()}/{self.resource_group.strip().lower()}"


class TenantConfig(TenantContext):
    """
    One tenant record driving onboarding.

    Example:
        {
            "display_name": "Contoso RAG",
            "subscription_id": "00000000-0000-0000-0000-000000000001",
            "resource_group": "rg-contoso-rag",
            "name_prefix": "contoso-rag",
            "allowed_models": ["gpt-4.1-mini"],
            "principal_id": "svc-contoso-rag",
            "attach_gateway": true
        }
    """

    display_name: str = Field(..., min_length=1, max_length=255)
    name_prefix: Optional[str] = Field(
        None,
        max_length=60,
        description="Prefix of the allocated name (defaults to the display name)",
    )
    allowed_models: list[str] = Field(default_factory=list)
    principal_id: Optional[str] = Field(None, max_length=255)
    attach_gateway: bool = False
    connection_models: Optional[list[str]] = Field(
        None,
        description="Models for the gateway connection (defaults to allowed_models)",
    )
    metadata: dict[str, Any] = Field(default_factory=dict)


class TenantUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    allowed_models: Optional[list[str]] = None
    principal_id: Optional[str] = Field(None, max_length=255)
    metadata: Optional[dict[str, Any]] = None


class TenantResponse(BaseSchema):
    id: str
    unique_name: str
    display_name: str
    subscription_id: str
    resource_group: str
    allowed_models: list[str]
    principal_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class OnboardRequest(BaseModel):
    tenants: list[TenantConfig] = Field(..., min_length=1, max_length=100)


class OnboardResult(BaseModel):
    """Outcome of onboarding one tenant record."""

    tenant: TenantResponse
    created: bool
    connection: Optional[ConnectionCreatedResponse] = None


class OnboardResponse(BaseModel):
    results: list[OnboardResult]


class DeprovisionResponse(BaseModel):
    tenant_id: str
    unique_name: str
    revoked_connections: int
    revoked_grants: int
