"""
Rate Limit Step

Fixed-window quota. Windows are aligned to epoch multiples of
``window_seconds``; the counter for a window is keyed on

    (subject, window_seconds, floor(now / window_seconds))

where the subject is the Connection id (scope "connection") or the gateway
API name (scope "api"). The first call of the next window always starts
from zero.
"""

from typing import ClassVar

from hubgate.config.constants import PolicyStepType, RateLimitScope
from hubgate.config.settings import settings
from hubgate.core.exceptions import RateLimitedError
from hubgate.gateway_plane.policy.base import BasePolicyStep, OutboundRequest, StepContext


class RateLimit(BasePolicyStep):
    """Count the request and reject it once the window's quota is spent."""

    step_type: ClassVar[str] = PolicyStepType.RATE_LIMIT.value
    description: ClassVar[str] = "Fixed-window request quota"

    def subject(self, context: StepContext) -> str:
        if self.config.scope == RateLimitScope.API.value:
            return f"api:{settings.GATEWAY_API_NAME}"
        return f"connection:{context.connection.connection_id}"

    async def apply(self, request: OutboundRequest, context: StepContext) -> None:
        result = await context.rate_limit_store.hit(
            self.subject(context),
            limit=self.config.calls,
            window_seconds=self.config.window_seconds,
        )
        if not result.allowed:
            raise RateLimitedError(
                retry_after=result.retry_after,
                limit=result.limit,
                window_seconds=result.window_seconds,
            )

        request.response_headers["X-RateLimit-Limit"] = str(result.limit)
        request.response_headers["X-RateLimit-Remaining"] = str(result.remaining)
