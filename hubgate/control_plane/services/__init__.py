"""Control Plane Services.

Business logic layer for control plane operations.
"""

from hubgate.control_plane.services.access_service import AccessPolicyService
from hubgate.control_plane.services.connection_service import ConnectionBrokerService
from hubgate.control_plane.services.naming_service import NamingAllocator
from hubgate.control_plane.services.provisioning_service import (
    ProvisioningClient,
    ProvisioningService,
)
from hubgate.control_plane.services.registry_service import ModelRegistryService
from hubgate.control_plane.services.tenant_service import TenantOnboarder, TenantService

__all__ = [
    "NamingAllocator",
    "AccessPolicyService",
    "ModelRegistryService",
    "ConnectionBrokerService",
    "TenantService",
    "TenantOnboarder",
    "ProvisioningClient",
    "ProvisioningService",
]
