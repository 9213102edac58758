"""Core utilities module."""

from hubgate.core.exceptions import (
    HubGateException,
    UnauthenticatedError,
    ModelNotAllowedError,
    UnknownModelError,
    BackendUnavailableError,
    ConstraintViolationError,
    RateLimitedError,
    BackendError,
    UnauthorizedError,
)

__all__ = [
    "HubGateException",
    "UnauthenticatedError",
    "ModelNotAllowedError",
    "UnknownModelError",
    "BackendUnavailableError",
    "ConstraintViolationError",
    "RateLimitedError",
    "BackendError",
    "UnauthorizedError",
]
