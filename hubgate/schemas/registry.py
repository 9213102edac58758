"""
Model Registry Schemas

Request/response models for model registration, resolution and default
routes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hubgate.schemas.common import BaseSchema
from hubgate.schemas.policy import PolicyStep


class LogicalModelSpec(BaseModel):
    """Logical model half of a registration."""

    name: str = Field(..., min_length=1, max_length=255, description="e.g. gpt-4.1-mini")
    format: str = Field(..., min_length=1, max_length=100, description="Provider family")
    version: str = Field(..., min_length=1, max_length=100)
    allowed_regions: Optional[list[str]] = Field(
        None,
        description="Regions this model may be deployed to (null = unrestricted)",
    )


class PhysicalDeploymentSpec(BaseModel):
    """Physical deployment half of a registration."""

    backend_id: str = Field(..., min_length=1, max_length=255)
    deployment_name: Optional[str] = Field(
        None,
        max_length=255,
        description="Backend-side deployment name (defaults to the logical model name)",
    )
    region: str = Field(..., min_length=1, max_length=100)
    capacity_units: int = Field(1, ge=1)
    endpoint_url: str = Field(..., min_length=1, max_length=2048)
    auth_scope: str = Field(..., min_length=1, max_length=512)


class RegisterRequest(BaseModel):
    """
    Register a logical model against a physical deployment.

    Example:
        {
            "model": {"name": "gpt-4.1-mini", "format": "OpenAI", "version": "2025-04-14"},
            "deployment": {"backend_id": "aoai-eus2-gpt41mini", "region": "eastus2",
                           "capacity_units": 50,
                           "endpoint_url": "https://aoai-eus2.example.com",
                           "auth_scope": "https://cognitiveservices.azure.com"},
            "policy": null
        }
    """

    model: LogicalModelSpec
    deployment: Optional[PhysicalDeploymentSpec] = Field(
        None,
        description="Target deployment (null = route through the format default)",
    )
    policy: Optional[list[PolicyStep]] = Field(
        None, description="Ordered policy steps (null = default policy)"
    )
    max_retries: int = Field(0, ge=0, le=5)


class DefaultRouteRequest(BaseModel):
    """Register the fallback route for every model of one format."""

    format: str = Field(..., min_length=1, max_length=100)
    deployment: PhysicalDeploymentSpec
    policy: Optional[list[PolicyStep]] = None
    max_retries: int = Field(0, ge=0, le=5)


class PhysicalDeploymentResponse(BaseSchema):
    backend_id: str
    deployment_name: str
    region: str
    capacity_units: int
    endpoint_url: str
    auth_scope: str
    status: str


class LogicalModelResponse(BaseSchema):
    name: str
    format: str
    version: str
    allowed_regions: Optional[list[str]] = None
    decommissioned_at: Optional[datetime] = None


class RoutingRuleResponse(BaseModel):
    """A routing rule as seen by admins."""

    id: str
    model: Optional[str] = None
    model_format: Optional[str] = None
    is_default: bool
    deployment: PhysicalDeploymentResponse
    policy: list[PolicyStep]
    max_retries: int
    active: bool
    created_at: datetime
    superseded_at: Optional[datetime] = None


class RegisterResponse(BaseModel):
    rule: Optional[RoutingRuleResponse] = Field(
        None, description="Active explicit rule (null when the format default applies)"
    )
    created: bool = Field(..., description="False when the registry was left unchanged")


class ResolvedRouteResponse(BaseModel):
    """Boundary view of a resolved route: {endpoint, authScope, region}."""

    model: str
    endpoint: str
    auth_scope: str
    region: str
    backend_id: str
    deployment_name: str
    via_default: bool


@dataclass(frozen=True)
class ResolvedRoute:
    """
    Immutable routing decision for one request.

    Built from a single registry snapshot; nothing on it is re-read while the
    request is in flight.
    """

    rule_id: str
    model: str
    model_format: str
    backend_id: str
    deployment_name: str
    endpoint: str
    auth_scope: str
    region: str
    policy: tuple = field(default_factory=tuple)
    max_retries: int = 0
    via_default: bool = False

    def to_response(self) -> ResolvedRouteResponse:
        return ResolvedRouteResponse(
            model=self.model,
            endpoint=self.endpoint,
            auth_scope=self.auth_scope,
            region=self.region,
            backend_id=self.backend_id,
            deployment_name=self.deployment_name,
            via_default=self.via_default,
        )
