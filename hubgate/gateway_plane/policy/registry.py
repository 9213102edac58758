"""
Policy Step Registry

Maps a step's ``type`` tag to its implementation.

Design Notes:
- Steps are registered explicitly from the loader list (no decorators)
- Registration happens once, at module load
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hubgate.core.exceptions import PolicyStepNotFoundError
from hubgate.core.logging import logger
from hubgate.gateway_plane.policy.loader import POLICY_STEP_CLASSES

if TYPE_CHECKING:
    from hubgate.gateway_plane.policy.base import BasePolicyStep


class PolicyStepRegistry:
    """Registry for policy step implementations."""

    def __init__(self) -> None:
        self._steps: dict[str, type[BasePolicyStep]] = {}

    def register(self, step_class: type[BasePolicyStep]) -> None:
        """Register a step class.

        Args:
            step_class: Step class to register

        Raises:
            ValueError: If another class already claims the same type tag
        """
        step_type = step_class.step_type
        existing = self._steps.get(step_type)
        if existing is not None:
            if existing is not step_class:
                raise ValueError(
                    f"Policy step '{step_type}' already registered by {existing.__name__}"
                )
            return
        self._steps[step_type] = step_class

    def get(self, step_type: str) -> type[BasePolicyStep] | None:
        return self._steps.get(step_type)

    def get_or_raise(self, step_type: str) -> type[BasePolicyStep]:
        """Get a step class by type tag.

        Raises:
            PolicyStepNotFoundError: If nothing is registered under the tag
        """
        step_class = self.get(step_type)
        if step_class is None:
            raise PolicyStepNotFoundError(step_type)
        return step_class

    def list_all(self) -> list[str]:
        return list(self._steps.keys())

    def count(self) -> int:
        return len(self._steps)


def _create_registry() -> PolicyStepRegistry:
    """Create and populate the policy step registry."""
    registry = PolicyStepRegistry()
    for step_class in POLICY_STEP_CLASSES:
        registry.register(step_class)
    logger.debug("Loaded policy steps", steps=registry.list_all())
    return registry


# Global registry instance - populated at module load time
policy_step_registry = _create_registry()
