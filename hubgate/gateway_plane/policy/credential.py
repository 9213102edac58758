"""
Substitute Credential Step

The trust boundary of the gateway: the caller's Connection key never reaches
a backend. Instead the gateway's own service identity is checked with the
access policy enforcer and a short-lived token scoped to the deployment's
``auth_scope`` is minted for this one request.

    caller:   api-key: hgk-...            (removed)
    backend:  Authorization: Bearer <jwt: sub=gateway, aud=auth_scope>
"""

from typing import ClassVar

from hubgate.config.constants import (
    Capability,
    CredentialMethod,
    PolicyStepType,
    deployment_scope,
)
from hubgate.config.settings import settings
from hubgate.core.logging import logger
from hubgate.core.security import mint_backend_token
from hubgate.gateway_plane.policy.base import BasePolicyStep, OutboundRequest, StepContext

CALLER_CREDENTIAL_HEADERS = ("authorization", "api-key")


class SubstituteCredential(BasePolicyStep):
    """Replace the caller credential with a gateway-minted backend credential."""

    step_type: ClassVar[str] = PolicyStepType.SUBSTITUTE_CREDENTIAL.value
    description: ClassVar[str] = "Attach a gateway-held backend credential"

    async def apply(self, request: OutboundRequest, context: StepContext) -> None:
        for header in (*CALLER_CREDENTIAL_HEADERS, settings.CONNECTION_KEY_HEADER):
            request.drop_header(header)

        route = context.route
        await context.enforcer.require(
            settings.GATEWAY_PRINCIPAL_ID,
            deployment_scope(route.backend_id),
            Capability.INVOKE_MODEL,
        )

        token = mint_backend_token(settings.GATEWAY_PRINCIPAL_ID, audience=route.auth_scope)
        if self.config.method == CredentialMethod.API_KEY.value:
            request.headers["api-key"] = token
        else:
            request.headers["Authorization"] = f"Bearer {token}"

        logger.debug(
            "Backend credential attached",
            request_id=request.request_id,
            backend_id=route.backend_id,
            method=self.config.method,
        )
