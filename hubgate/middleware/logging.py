"""
Logging Middleware

Binds a request id and the serving plane to every log line of a request,
and logs one line when the request starts and one when it ends.

    X-Request-ID: req-4f1c2a9b7d3e   (caller's value kept, else generated)

The id is stored on request.state so the gateway can forward it upstream,
and echoed on every response, error responses included.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from hubgate.config.constants import REQUEST_ID_HEADER
from hubgate.core.logging import clear_log_context, log_context, logger

PLANE_PREFIXES = (
    ("/gateway/", "gateway"),
    ("/control-plane/", "control"),
)


def plane_for(path: str) -> str:
    """Which plane serves a path ("gateway", "control" or "service")."""
    for prefix, plane in PLANE_PREFIXES:
        if path.startswith(prefix):
            return plane
    return "service"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request id propagation and request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req-{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        log_context(
            request_id=request_id,
            plane=plane_for(request.url.path),
            method=request.method,
            path=request.url.path,
        )
        # Query strings carry api-version and similar; headers carry keys
        logger.info("Request started", query_params=str(request.query_params))

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                error=str(e),
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
            raise
        else:
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "Request completed",
                status_code=response.status_code,
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_log_context()
