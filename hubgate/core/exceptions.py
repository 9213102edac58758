"""
Custom Exceptions

Application-specific exceptions with HTTP status codes.

Every broker/router failure kind is its own class with a stable error_code,
so callers and tests branch on the type (or the code) rather than the text.
The ``retryable`` flag marks the recoverable classes (rate limiting and
upstream failures); the router itself never retries on them.
"""

from typing import Any, Optional


class HubGateException(Exception):
    """Base exception for all HubGate errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Broker / Router Error Taxonomy
# =============================================================================


class UnauthenticatedError(HubGateException):
    """Missing, unknown, or revoked Connection credential."""

    def __init__(
        self,
        message: str = "Invalid or revoked connection credential",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHENTICATED",
            details=details,
        )


class ModelNotAllowedError(HubGateException):
    """Requested model is outside the caller's allow-list."""

    def __init__(
        self,
        models: list[str],
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message=message or f"Model(s) not allowed: {', '.join(models)}",
            status_code=403,
            error_code="MODEL_NOT_ALLOWED",
            details={"models": models},
        )
        self.models = models


class UnknownModelError(HubGateException):
    """Logical model name(s) not present in the registry."""

    def __init__(self, models: list[str]) -> None:
        super().__init__(
            message=f"Unknown model(s): {', '.join(models)}",
            status_code=404,
            error_code="UNKNOWN_MODEL",
            details={"models": models},
        )
        self.models = models


class BackendUnavailableError(HubGateException):
    """Registry entry resolves to nothing live."""

    def __init__(
        self,
        model: str,
        reason: str = "No active routing rule",
    ) -> None:
        super().__init__(
            message=f"Backend unavailable for model '{model}': {reason}",
            status_code=503,
            error_code="BACKEND_UNAVAILABLE",
            details={"model": model, "reason": reason},
        )


class ConstraintViolationError(HubGateException):
    """Registration violates a placement or policy rule."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=422,
            error_code="CONSTRAINT_VIOLATION",
            details=details,
        )


class RateLimitedError(HubGateException):
    """Quota exceeded for the current window."""

    retryable = True

    def __init__(
        self,
        retry_after: int,
        limit: int,
        window_seconds: int,
        message: str = "Rate limit exceeded",
    ) -> None:
        super().__init__(
            message=message,
            status_code=429,
            error_code="RATE_LIMITED",
            details={
                "retry_after_seconds": retry_after,
                "limit": limit,
                "window_seconds": window_seconds,
            },
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


class BackendError(HubGateException):
    """Upstream failure with the upstream status preserved."""

    retryable = True

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        status_code: int = 502,
        upstream_url: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        extra_details = details or {}
        if upstream_url:
            extra_details["upstream_url"] = upstream_url
        if upstream_status:
            extra_details["upstream_status"] = upstream_status
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="BACKEND_ERROR",
            details=extra_details,
        )
        self.upstream_status = upstream_status


class UnauthorizedError(HubGateException):
    """Access policy enforcer denial."""

    def __init__(
        self,
        message: str = "Access denied",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code="UNAUTHORIZED",
            details=details,
        )


# =============================================================================
# Control Plane Exceptions
# =============================================================================


class NotFoundError(HubGateException):
    """Resource not found error."""

    def __init__(
        self,
        resource: str,
        resource_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class TenantNotFoundError(NotFoundError):
    """Tenant not found error."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(resource="Tenant", resource_id=tenant_id)


class ConnectionNotFoundError(NotFoundError):
    """Connection not found error."""

    def __init__(self, connection_id: str) -> None:
        super().__init__(resource="Connection", resource_id=connection_id)


class GrantNotFoundError(NotFoundError):
    """Access grant not found error."""

    def __init__(self, grant_id: str) -> None:
        super().__init__(resource="Access grant", resource_id=grant_id)


class ValidationError(HubGateException):
    """Validation error."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class ConflictError(HubGateException):
    """Resource conflict error."""

    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONFLICT",
            details=details,
        )


class ProvisioningError(HubGateException):
    """External provisioning engine failed or timed out."""

    def __init__(
        self,
        message: str,
        operation_id: Optional[str] = None,
        state: Optional[str] = None,
    ) -> None:
        details: dict[str, Any] = {}
        if operation_id:
            details["operation_id"] = operation_id
        if state:
            details["state"] = state
        super().__init__(
            message=message,
            status_code=502,
            error_code="PROVISIONING_ERROR",
            details=details,
        )


class PolicyStepNotFoundError(HubGateException):
    """Policy step type not registered."""

    def __init__(self, step_type: str) -> None:
        super().__init__(
            message=f"Policy step '{step_type}' is not registered",
            status_code=500,
            error_code="POLICY_STEP_NOT_FOUND",
            details={"step_type": step_type},
        )
