"""
Error Handler Middleware

Global exception handling for the API.

Every HubGateException renders as {"error": {"code", "message", "details"}}
with its own status code and headers (Retry-After on RateLimited). Request
validation failures render the same way with code VALIDATION_ERROR and 400.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from hubgate.core.exceptions import HubGateException
from hubgate.core.logging import logger
from hubgate.schemas.common import ErrorResponse


def _validation_response(errors: list) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=ErrorResponse.build(
            "VALIDATION_ERROR", "Request validation failed", {"errors": errors}
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Set up global exception handlers.

    Args:
        app: FastAPI application
    """

    @app.exception_handler(HubGateException)
    async def hubgate_exception_handler(
        _request: Request, exc: HubGateException
    ) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Application error",
            error_code=exc.error_code,
            message=exc.message,
            status_code=exc.status_code,
            retryable=exc.retryable,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=exc.headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Body, path and query validation (policy step tags included)."""
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        logger.warning("Request validation error", errors=errors)
        return _validation_response(errors)

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(
        _request: Request, exc: ValidationError
    ) -> JSONResponse:
        errors = exc.errors(include_url=False, include_context=False)
        logger.warning("Validation error", errors=errors)
        return _validation_response(errors)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unexpected error",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse.build("INTERNAL_ERROR", "An unexpected error occurred"),
        )
