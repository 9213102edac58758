"""
Gateway Router Service

The request-time hot path. One call to ``route()`` walks the full state
machine for a single inbound request:

    1. Authenticate   Connection key ──► ConnectionContext   (Unauthenticated)
    2. Authorize      model ∈ allow-list                     (ModelNotAllowed)
    3. Resolve        one registry snapshot ──► ResolvedRoute (BackendUnavailable)
    4-6. Policy       inject params, substitute credential, rate limit
                      (Unauthorized, RateLimited)
    7. Dispatch       bounded timeout, optional per-rule retry (BackendError)

Everything per-request (OutboundRequest, ResolvedRoute, ConnectionContext)
is created inside route() and never shared; the rate-limit counters are the
only shared mutable state. The usage stamp from step 1 is committed before
step 2, so the request holds no write transaction while it waits on a
backend and a concurrent rotate or revoke never blocks behind it. Any
failure raises before a response is built, so a half-prepared request
never leaves the gateway.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.cache.rate_limit_store import RateLimitStore, get_rate_limit_store
from hubgate.config.constants import BLOCKED_FORWARD_HEADERS
from hubgate.config.settings import settings
from hubgate.control_plane.services.access_service import AccessPolicyService
from hubgate.control_plane.services.connection_service import ConnectionBrokerService
from hubgate.control_plane.services.registry_service import ModelRegistryService
from hubgate.core.exceptions import (
    BackendUnavailableError,
    ModelNotAllowedError,
    UnknownModelError,
)
from hubgate.core.logging import logger
from hubgate.gateway_plane.dispatch.client import BackendClient, BackendResponse, get_backend_client
from hubgate.gateway_plane.engine.pipeline import PolicyPipeline
from hubgate.gateway_plane.policy.base import OutboundRequest, StepContext
from hubgate.schemas.connection import ConnectionContext
from hubgate.schemas.registry import ResolvedRoute


@dataclass
class InboundRequest:
    """What the gateway received, before any policy ran."""

    request_id: str
    method: str
    model: str
    path: str
    query: dict[str, str]
    headers: dict[str, str]
    body: Optional[Any]
    credential: Optional[str]


@dataclass
class GatewayResult:
    """Backend reply plus the routing facts echoed to the caller."""

    response: BackendResponse
    route: ResolvedRoute
    connection: ConnectionContext
    extra_headers: dict[str, str]


class GatewayRouter:
    """Routes one inbound request to its physical deployment."""

    def __init__(
        self,
        session: AsyncSession,
        backend_client: Optional[BackendClient] = None,
        rate_limit_store: Optional[RateLimitStore] = None,
    ) -> None:
        self.session = session
        self.broker = ConnectionBrokerService(session)
        self.registry = ModelRegistryService(session)
        self.enforcer = AccessPolicyService(session)
        self.backend_client = backend_client or get_backend_client()
        self.rate_limit_store = rate_limit_store or get_rate_limit_store()

    async def route(self, inbound: InboundRequest) -> GatewayResult:
        """Run the full request state machine.

        Raises:
            HubGateException: The error kind of whichever stage rejected it
        """
        connection = await self.broker.authenticate(inbound.credential)
        # The usage write commits on its own; no row lock is held across dispatch
        await self.session.commit()

        if inbound.model not in connection.model_allow_list:
            logger.info(
                "Model not in connection allow-list",
                request_id=inbound.request_id,
                connection_id=connection.connection_id,
                model=inbound.model,
            )
            raise ModelNotAllowedError([inbound.model])

        try:
            route = await self.registry.resolve(inbound.model)
        except UnknownModelError as e:
            # The registry is authoritative; an allow-listed but unregistered
            # model has nothing live behind it.
            raise BackendUnavailableError(
                inbound.model, reason="Model is no longer registered"
            ) from e

        outbound = OutboundRequest(
            request_id=inbound.request_id,
            method=inbound.method,
            path=inbound.path,
            query=dict(inbound.query),
            headers={
                name: value
                for name, value in inbound.headers.items()
                if name.lower() not in BLOCKED_FORWARD_HEADERS
                and name.lower() != settings.CONNECTION_KEY_HEADER.lower()
            },
            body=inbound.body,
        )

        context = StepContext(
            connection=connection,
            route=route,
            enforcer=self.enforcer,
            rate_limit_store=self.rate_limit_store,
        )
        await PolicyPipeline(context).execute(outbound)

        response = await self.backend_client.dispatch(route, outbound)

        logger.info(
            "Gateway request routed",
            request_id=inbound.request_id,
            connection_id=connection.connection_id,
            tenant=connection.tenant_name,
            model=route.model,
            backend_id=route.backend_id,
            region=route.region,
            via_default=route.via_default,
            status_code=response.status_code,
        )
        return GatewayResult(
            response=response,
            route=route,
            connection=connection,
            extra_headers=dict(outbound.response_headers),
        )
