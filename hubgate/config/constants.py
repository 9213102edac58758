"""
Application Constants

Centralized constants used throughout the application.
"""

from enum import Enum


class PrincipalType(str, Enum):
    """Kinds of identity that can hold access grants."""

    USER = "User"
    SERVICE_IDENTITY = "ServiceIdentity"


class Capability(str, Enum):
    """
    Coarse named permissions checked by the access policy enforcer.

    Provider-specific role names never appear here; see CAPABILITY_PROVIDER_ROLES
    for the translation applied at the API boundary.
    """

    INVOKE_MODEL = "invoke-model"
    INVOKE_OWN_RESOURCES = "invoke-own-resources"
    READ_INDEX_DATA = "read-index-data"
    WRITE_INDEX_DATA = "write-index-data"
    READ_BLOB_DATA = "read-blob-data"
    WRITE_BLOB_DATA = "write-blob-data"
    READ_SECRETS = "read-secrets"
    MANAGE_DEPLOYMENTS = "manage-deployments"
    MANAGE_CONNECTIONS = "manage-connections"
    MANAGE_ACCESS = "manage-access"


# Capabilities a principal may grant to itself
SELF_GRANTABLE_CAPABILITIES: frozenset[Capability] = frozenset(
    {Capability.INVOKE_OWN_RESOURCES}
)

CAPABILITY_PROVIDER_ROLES: dict[Capability, str] = {
    Capability.INVOKE_MODEL: "Cognitive Services OpenAI User",
    Capability.INVOKE_OWN_RESOURCES: "Azure AI User",
    Capability.READ_INDEX_DATA: "Search Index Data Reader",
    Capability.WRITE_INDEX_DATA: "Search Index Data Contributor",
    Capability.READ_BLOB_DATA: "Storage Blob Data Reader",
    Capability.WRITE_BLOB_DATA: "Storage Blob Data Contributor",
    Capability.READ_SECRETS: "Key Vault Secrets User",
    Capability.MANAGE_DEPLOYMENTS: "Cognitive Services Contributor",
    Capability.MANAGE_CONNECTIONS: "Azure AI Developer",
    Capability.MANAGE_ACCESS: "User Access Administrator",
}


class PolicyStepType(str, Enum):
    """Tagged variants of a routing rule's policy pipeline."""

    INJECT_DEFAULT_PARAM = "InjectDefaultParam"
    SUBSTITUTE_CREDENTIAL = "SubstituteCredential"
    RATE_LIMIT = "RateLimit"


class ParamLocation(str, Enum):
    """Where a default parameter is injected."""

    QUERY = "query"
    BODY = "body"


class CredentialMethod(str, Enum):
    """How the substituted backend credential is attached."""

    BEARER = "bearer"
    API_KEY = "api-key"


class RateLimitScope(str, Enum):
    """Subject a rate-limit counter is keyed on."""

    CONNECTION = "connection"
    API = "api"


class DeploymentStatus(str, Enum):
    """Lifecycle of a physical deployment."""

    ACTIVE = "active"
    DECOMMISSIONED = "decommissioned"


class ProvisioningState(str, Enum):
    """Terminal and in-flight states reported by the provisioning engine."""

    ACCEPTED = "Accepted"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"


# =============================================================================
# Resource scopes
# =============================================================================

HUB_SCOPE = "/hub"
SCOPE_SEPARATOR = "/"


def deployment_scope(backend_id: str) -> str:
    """Scope path of a physical deployment."""
    return f"{HUB_SCOPE}/deployments/{backend_id}"


def tenant_scope(unique_name: str) -> str:
    """Scope path of a tenant's own resources."""
    return f"/tenants/{unique_name}"


# =============================================================================
# Gateway
# =============================================================================

# Headers never forwarded to a backend (hop-by-hop and caller credentials)
BLOCKED_FORWARD_HEADERS = frozenset(
    {
        "host",
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "content-length",
        "authorization",
        "api-key",
        "cookie",
    }
)

# Headers never copied from a backend response
BLOCKED_RESPONSE_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "transfer-encoding",
        "content-length",
        "content-encoding",
        "server",
        "set-cookie",
    }
)

BACKEND_REGION_HEADER = "X-Backend-Region"
REQUEST_ID_HEADER = "X-Request-ID"

# Redis key prefixes
RATE_LIMIT_KEY_PREFIX = "hubgate:ratelimit:"
