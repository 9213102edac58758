"""Policy step implementations."""

from hubgate.gateway_plane.policy.base import BasePolicyStep, OutboundRequest, StepContext
from hubgate.gateway_plane.policy.registry import policy_step_registry

__all__ = [
    "BasePolicyStep",
    "OutboundRequest",
    "StepContext",
    "policy_step_registry",
]
