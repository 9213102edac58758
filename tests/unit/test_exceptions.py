"""
Error Taxonomy Unit Tests

Each failure kind has a fixed HTTP status and error code.
"""

import pytest

from hubgate.core.exceptions import (
    BackendError,
    BackendUnavailableError,
    ConflictError,
    ConstraintViolationError,
    HubGateException,
    ModelNotAllowedError,
    RateLimitedError,
    UnauthenticatedError,
    UnauthorizedError,
    UnknownModelError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error,status_code,error_code",
    [
        (UnauthenticatedError(), 401, "UNAUTHENTICATED"),
        (ModelNotAllowedError(["o3"]), 403, "MODEL_NOT_ALLOWED"),
        (UnknownModelError(["o3"]), 404, "UNKNOWN_MODEL"),
        (BackendUnavailableError("o3"), 503, "BACKEND_UNAVAILABLE"),
        (ConstraintViolationError("bad"), 422, "CONSTRAINT_VIOLATION"),
        (RateLimitedError(retry_after=5, limit=1, window_seconds=60), 429, "RATE_LIMITED"),
        (BackendError("boom"), 502, "BACKEND_ERROR"),
        (UnauthorizedError(), 403, "UNAUTHORIZED"),
        (ValidationError(), 400, "VALIDATION_ERROR"),
        (ConflictError(), 409, "CONFLICT"),
    ],
)
def test_status_and_code(error: HubGateException, status_code: int, error_code: str):
    assert error.status_code == status_code
    assert error.error_code == error_code
    assert error.to_dict()["error"]["code"] == error_code


class TestRetryable:
    """Only rate limiting and upstream failures are recoverable."""

    def test_retryable_kinds(self):
        assert RateLimitedError(retry_after=1, limit=1, window_seconds=1).retryable
        assert BackendError("boom").retryable

    def test_terminal_kinds(self):
        assert not UnauthenticatedError().retryable
        assert not ModelNotAllowedError(["x"]).retryable
        assert not UnauthorizedError().retryable


class TestDetails:
    def test_rate_limited_sets_retry_after_header(self):
        error = RateLimitedError(retry_after=17, limit=10, window_seconds=60)
        assert error.headers == {"Retry-After": "17"}
        assert error.details["retry_after_seconds"] == 17

    def test_backend_error_keeps_upstream_status(self):
        error = BackendError("bad gateway", upstream_status=503, status_code=503, upstream_url="u")
        assert error.upstream_status == 503
        assert error.details == {"upstream_url": "u", "upstream_status": 503}

    def test_unknown_model_lists_every_name(self):
        error = UnknownModelError(["a", "b"])
        assert error.details == {"models": ["a", "b"]}
        assert "a, b" in error.message
