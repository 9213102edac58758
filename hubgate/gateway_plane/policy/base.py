"""
Base Policy Step

Abstract base class for the steps a routing rule's policy is made of.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from hubgate.cache.rate_limit_store import RateLimitStore
from hubgate.control_plane.services.access_service import AccessPolicyService
from hubgate.schemas.connection import ConnectionContext
from hubgate.schemas.policy import PolicyStep
from hubgate.schemas.registry import ResolvedRoute


@dataclass
class OutboundRequest:
    """
    The request being prepared for the backend.

    Created fresh for every inbound request and owned by it alone; steps
    mutate it in place.
    """

    request_id: str
    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None
    response_headers: dict[str, str] = field(default_factory=dict)

    def has_header(self, name: str) -> bool:
        lowered = name.lower()
        return any(key.lower() == lowered for key in self.headers)

    def drop_header(self, name: str) -> None:
        lowered = name.lower()
        for key in [k for k in self.headers if k.lower() == lowered]:
            del self.headers[key]


@dataclass(frozen=True)
class StepContext:
    """Read-only collaborators a step may consult."""

    connection: ConnectionContext
    route: ResolvedRoute
    enforcer: AccessPolicyService
    rate_limit_store: RateLimitStore


class BasePolicyStep(ABC):
    """Abstract base class for policy steps."""

    # Class attributes to be overridden by subclasses
    step_type: ClassVar[str] = "base"
    description: ClassVar[str] = "Base policy step"

    def __init__(self, config: PolicyStep) -> None:
        """Initialize step with its validated configuration.

        Args:
            config: Typed step from the routing rule's policy
        """
        self.config = config

    @abstractmethod
    async def apply(self, request: OutboundRequest, context: StepContext) -> None:
        """Apply this step to the outbound request.

        Args:
            request: Request being prepared (mutated in place)
            context: Connection, route and shared collaborators

        Raises:
            HubGateException: A subclass of it to reject the request
        """
