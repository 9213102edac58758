"""
Inject Default Parameter Step

Sets a parameter the backend requires when the caller left it out, e.g. the
``api-version`` query parameter. A value the caller supplied is never
touched.
"""

from typing import ClassVar

from hubgate.config.constants import ParamLocation, PolicyStepType
from hubgate.core.logging import logger
from hubgate.gateway_plane.policy.base import BasePolicyStep, OutboundRequest, StepContext


class InjectDefaultParam(BasePolicyStep):
    """Inject a default query or body parameter."""

    step_type: ClassVar[str] = PolicyStepType.INJECT_DEFAULT_PARAM.value
    description: ClassVar[str] = "Inject a default parameter when omitted"

    async def apply(self, request: OutboundRequest, context: StepContext) -> None:
        name, value = self.config.name, self.config.value

        if self.config.location == ParamLocation.QUERY.value:
            if name in request.query:
                return
            request.query[name] = value
        else:
            # Only JSON object bodies carry named parameters
            if not isinstance(request.body, dict) or name in request.body:
                return
            request.body[name] = value

        logger.debug(
            "Injected default parameter",
            request_id=request.request_id,
            name=name,
            location=self.config.location,
        )
