"""
HubGate SQLAlchemy Models

Model Hierarchy:
================
    Tenant (spoke)
       └── Connections (gateway credentials with a model allow-list)

    LogicalModel ──┐
                   ├── RoutingRule (one active per model / per format default)
    PhysicalDeployment ──┘

    AccessGrant (append-mostly ledger of principal capabilities on scopes)

Usage:
======
    from hubgate.models import Tenant, Connection, RoutingRule
"""

from hubgate.models.access_grant import AccessGrant
from hubgate.models.base import Base, SoftDeleteMixin, TimestampMixin
from hubgate.models.connection import Connection
from hubgate.models.logical_model import LogicalModel
from hubgate.models.physical_deployment import PhysicalDeployment
from hubgate.models.routing_rule import RoutingRule
from hubgate.models.tenant import Tenant

__all__ = [
    # Base classes and mixins
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    # Core models
    "Tenant",
    "Connection",
    "LogicalModel",
    "PhysicalDeployment",
    "RoutingRule",
    "AccessGrant",
]
