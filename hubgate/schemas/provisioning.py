"""
Provisioning Schemas

Boundary models for the external provisioning engine.
"""

from typing import Optional

from pydantic import BaseModel, Field

from hubgate.schemas.policy import PolicyStep


class DeploymentDescription(BaseModel):
    """Declarative description submitted to the provisioning engine."""

    model: str
    format: str
    version: str
    region: str
    capacity_units: int = Field(1, ge=1)
    deployment_name: str
    backend_id: str


class ProvisionedDeployment(BaseModel):
    """What the provisioning engine returns once an operation succeeds."""

    operation_id: str
    endpoint_url: str
    principal_id: Optional[str] = None
    auth_scope: Optional[str] = None


class ProvisionRequest(BaseModel):
    """Provision capacity for a logical model, then register it."""

    name: str = Field(..., min_length=1, max_length=255)
    format: str = Field(..., min_length=1, max_length=100)
    version: str = Field(..., min_length=1, max_length=100)
    region: str = Field(..., min_length=1, max_length=100)
    capacity_units: int = Field(1, ge=1)
    backend_id: str = Field(..., min_length=1, max_length=255)
    deployment_name: Optional[str] = None
    auth_scope: str = Field(
        "https://cognitiveservices.azure.com",
        description="Used when the engine does not report one",
    )
    allowed_regions: Optional[list[str]] = None
    policy: Optional[list[PolicyStep]] = None
    max_retries: int = Field(0, ge=0, le=5)
