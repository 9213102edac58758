"""
Pydantic Schemas

Request/response models for API endpoints.
"""

from hubgate.schemas.access import (
    AccessGrantResponse,
    CheckRequest,
    CheckResponse,
    GrantHistoryResponse,
    GrantRequest,
    Principal,
)
from hubgate.schemas.auth import CurrentPrincipal
from hubgate.schemas.common import (
    ErrorResponse,
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
)
from hubgate.schemas.connection import (
    ConnectionContext,
    ConnectionCreatedResponse,
    ConnectionIssueRequest,
    ConnectionResponse,
    ConnectionRotateRequest,
)
from hubgate.schemas.naming import AllocateRequest, AllocateResponse
from hubgate.schemas.policy import (
    InjectDefaultParamStep,
    PolicyStep,
    RateLimitStep,
    SubstituteCredentialStep,
    default_policy,
)
from hubgate.schemas.provisioning import (
    DeploymentDescription,
    ProvisionedDeployment,
    ProvisionRequest,
)
from hubgate.schemas.registry import (
    DefaultRouteRequest,
    LogicalModelSpec,
    PhysicalDeploymentSpec,
    RegisterRequest,
    RegisterResponse,
    ResolvedRoute,
    ResolvedRouteResponse,
    RoutingRuleResponse,
)
from hubgate.schemas.tenant import (
    DeprovisionResponse,
    OnboardRequest,
    OnboardResponse,
    OnboardResult,
    TenantConfig,
    TenantContext,
    TenantResponse,
    TenantUpdate,
)

__all__ = [
    # Access
    "AccessGrantResponse",
    "CheckRequest",
    "CheckResponse",
    "GrantHistoryResponse",
    "GrantRequest",
    "Principal",
    "CurrentPrincipal",
    # Common
    "ErrorResponse",
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    # Connections
    "ConnectionContext",
    "ConnectionCreatedResponse",
    "ConnectionIssueRequest",
    "ConnectionResponse",
    "ConnectionRotateRequest",
    # Naming
    "AllocateRequest",
    "AllocateResponse",
    # Policy
    "InjectDefaultParamStep",
    "PolicyStep",
    "RateLimitStep",
    "SubstituteCredentialStep",
    "default_policy",
    # Provisioning
    "DeploymentDescription",
    "ProvisionedDeployment",
    "ProvisionRequest",
    # Registry
    "DefaultRouteRequest",
    "LogicalModelSpec",
    "PhysicalDeploymentSpec",
    "RegisterRequest",
    "RegisterResponse",
    "ResolvedRoute",
    "ResolvedRouteResponse",
    "RoutingRuleResponse",
    # Tenants
    "DeprovisionResponse",
    "OnboardRequest",
    "OnboardResponse",
    "OnboardResult",
    "TenantConfig",
    "TenantContext",
    "TenantResponse",
    "TenantUpdate",
]
