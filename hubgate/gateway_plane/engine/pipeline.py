"""
Policy Pipeline

Runs a route's policy steps in list order against one outbound request.

A step either mutates the request or raises; the first raise aborts the
pipeline and nothing is dispatched.
"""

from hubgate.core.logging import logger
from hubgate.gateway_plane.policy.base import OutboundRequest, StepContext
from hubgate.gateway_plane.policy.registry import policy_step_registry


class PolicyPipeline:
    """Pipeline for executing a routing rule's policy steps in sequence."""

    def __init__(self, context: StepContext) -> None:
        """Initialize pipeline.

        Args:
            context: Connection, resolved route and shared collaborators
        """
        self.context = context
        self.steps = [
            policy_step_registry.get_or_raise(config.type)(config)
            for config in context.route.policy
        ]

    async def execute(self, request: OutboundRequest) -> OutboundRequest:
        """Apply every step in order.

        Args:
            request: Request being prepared for the backend

        Returns:
            The same request, fully prepared

        Raises:
            HubGateException: Raised by the first step that rejects the request
        """
        logger.info(
            "Starting policy pipeline",
            request_id=request.request_id,
            rule_id=self.context.route.rule_id,
            steps=[step.step_type for step in self.steps],
        )

        for index, step in enumerate(self.steps):
            logger.debug(
                "Applying policy step",
                request_id=request.request_id,
                step_type=step.step_type,
                step_index=index + 1,
                total_steps=len(self.steps),
            )
            await step.apply(request, self.context)

        logger.info(
            "Policy pipeline complete",
            request_id=request.request_id,
            steps_applied=len(self.steps),
        )
        return request
