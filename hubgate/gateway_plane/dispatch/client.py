"""
Backend HTTP Client

Forwards prepared requests to physical deployments.

Features:
- Connection pooling shared by all requests
- Bounded timeout on every dispatch
- Retries only when the routing rule sets max_retries > 0, and only on
  connect errors and timeouts
- Upstream failures surface as BackendError with the upstream status kept
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from hubgate.config.constants import BLOCKED_RESPONSE_HEADERS
from hubgate.config.settings import settings
from hubgate.core.exceptions import BackendError
from hubgate.core.logging import logger
from hubgate.gateway_plane.policy.base import OutboundRequest
from hubgate.schemas.registry import ResolvedRoute

METHODS_WITH_BODY = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass
class BackendResponse:
    """Successful (2xx/4xx) backend reply."""

    status_code: int
    body: Optional[Any]
    headers: dict[str, str] = field(default_factory=dict)
    elapsed_ms: float = 0.0


def sends_body(request: OutboundRequest) -> bool:
    """Whether the request carries a JSON body to the backend."""
    return request.method.upper() in METHODS_WITH_BODY and request.body is not None


def build_backend_url(route: ResolvedRoute, path: str) -> str:
    """{endpoint}/openai/deployments/{deployment_name}/{path}"""
    base = f"{route.endpoint.rstrip('/')}/openai/deployments/{route.deployment_name}"
    path = path.lstrip("/")
    return f"{base}/{path}" if path else base


class BackendClient:
    """
    HTTP client for communicating with physical deployments.

    Uses httpx for async HTTP requests with:
    - Connection pooling
    - Configurable timeouts
    - Opt-in retry for transient failures
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        max_keepalive_connections: int = 20,
        max_connections: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            timeout_seconds: Bound on each dispatch attempt
            max_keepalive_connections: Max keepalive connections in pool
            max_connections: Max total connections in pool
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.timeout_seconds = timeout_seconds
        self.max_keepalive_connections = max_keepalive_connections
        self.max_connections = max_connections
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        """Create the pooled client. Call during application startup."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(
                    max_keepalive_connections=self.max_keepalive_connections,
                    max_connections=self.max_connections,
                ),
                follow_redirects=False,
                transport=self.transport,
            )
            logger.info("Backend client initialized", timeout_seconds=self.timeout_seconds)

    async def close(self) -> None:
        """Close the pooled client. Call during application shutdown."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Backend client closed")

    async def dispatch(self, route: ResolvedRoute, request: OutboundRequest) -> BackendResponse:
        """Send a prepared request to the route's deployment.

        Args:
            route: Resolved route (endpoint, deployment name, retries)
            request: Request after the policy pipeline ran

        Returns:
            BackendResponse for 2xx/4xx JSON replies

        Raises:
            BackendError: 5xx, timeout (504), connect failure (502) or non-JSON body
        """
        if self._client is None:
            await self.initialize()

        url = build_backend_url(route, request.path)
        send_body = sends_body(request)
        headers = self._prepare_headers(request, send_body)
        start_time = time.perf_counter()

        logger.info(
            "Dispatching to backend",
            request_id=request.request_id,
            http_method=request.method,
            backend_id=route.backend_id,
            region=route.region,
            upstream_url=url,
        )

        try:
            response = await self._make_request(
                method=request.method,
                url=url,
                query=request.query,
                body=request.body if send_body else None,
                headers=headers,
                max_retries=route.max_retries,
                request_id=request.request_id,
            )
        except httpx.TimeoutException as e:
            logger.error(
                "Backend TIMEOUT",
                request_id=request.request_id,
                upstream_url=url,
                timeout_seconds=self.timeout_seconds,
                error=str(e),
            )
            raise BackendError(
                f"Backend timed out after {self.timeout_seconds}s",
                status_code=504,
                upstream_url=url,
            ) from e
        except httpx.ConnectError as e:
            logger.error(
                "Backend CONNECTION ERROR",
                request_id=request.request_id,
                upstream_url=url,
                error=str(e),
            )
            raise BackendError(
                f"Cannot connect to backend: {e}",
                status_code=502,
                upstream_url=url,
            ) from e
        except httpx.HTTPError as e:
            logger.error(
                "Backend transport error",
                request_id=request.request_id,
                upstream_url=url,
                error_type=type(e).__name__,
            )
            raise BackendError(f"Backend request failed: {e}", upstream_url=url) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Backend response received",
            request_id=request.request_id,
            status_code=response.status_code,
            response_time_ms=round(elapsed_ms, 2),
        )
        return self._handle_response(response, url, elapsed_ms, request.request_id)

    async def _make_request(
        self,
        method: str,
        url: str,
        query: dict[str, str],
        body: Optional[Any],
        headers: dict[str, str],
        max_retries: int,
        request_id: str,
    ) -> httpx.Response:
        """Send the request, retrying connect errors/timeouts up to max_retries."""
        method = method.upper()
        send_body = body is not None

        for attempt in range(max_retries + 1):
            try:
                if send_body:
                    return await self._client.request(
                        method, url, params=query, json=body, headers=headers
                    )
                return await self._client.request(method, url, params=query, headers=headers)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                if attempt >= max_retries:
                    raise
                logger.warning(
                    "Backend request failed, retrying",
                    request_id=request_id,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    error=str(e),
                )
        raise RuntimeError("unreachable")

    def _prepare_headers(self, request: OutboundRequest, send_body: bool) -> dict[str, str]:
        """Headers after the policy pipeline, plus gateway bookkeeping.

        Content-Type is set only when a body is sent.
        """
        headers = {
            name: value for name, value in request.headers.items() if name.lower() != "content-type"
        }
        if send_body:
            headers["Content-Type"] = "application/json"
        headers["X-Gateway-Request-ID"] = request.request_id
        return headers

    def _handle_response(
        self,
        response: httpx.Response,
        url: str,
        elapsed_ms: float,
        request_id: str,
    ) -> BackendResponse:
        if response.status_code >= 500:
            logger.error(
                "Backend returned server error",
                request_id=request_id,
                status_code=response.status_code,
                upstream_url=url,
            )
            raise BackendError(
                f"Backend returned {response.status_code}",
                upstream_status=response.status_code,
                status_code=response.status_code,
                upstream_url=url,
            )

        body = None
        if response.content:
            try:
                body = response.json()
            except json.JSONDecodeError as e:
                logger.error(
                    "Backend returned non-JSON response",
                    request_id=request_id,
                    status_code=response.status_code,
                    content_type=response.headers.get("content-type"),
                )
                raise BackendError(
                    "Backend returned invalid JSON",
                    upstream_status=response.status_code,
                    status_code=502,
                    upstream_url=url,
                ) from e

        return BackendResponse(
            status_code=response.status_code,
            body=body,
            headers={
                name: value
                for name, value in response.headers.items()
                if name.lower() not in BLOCKED_RESPONSE_HEADERS
            },
            elapsed_ms=elapsed_ms,
        )


class _BackendClientHolder:
    """Holder for global backend client instance."""

    instance: BackendClient | None = None


def get_backend_client() -> BackendClient:
    """Get the global backend client instance."""
    if _BackendClientHolder.instance is None:
        _BackendClientHolder.instance = BackendClient(
            timeout_seconds=settings.BACKEND_TIMEOUT_SECONDS,
            max_keepalive_connections=settings.BACKEND_MAX_KEEPALIVE_CONNECTIONS,
            max_connections=settings.BACKEND_MAX_CONNECTIONS,
        )
    return _BackendClientHolder.instance


def set_backend_client(client: BackendClient | None) -> None:
    """Replace the global backend client (tests)."""
    _BackendClientHolder.instance = client


async def init_backend_client() -> None:
    """Initialize the global backend client."""
    await get_backend_client().initialize()


async def close_backend_client() -> None:
    """Close the global backend client."""
    if _BackendClientHolder.instance:
        await _BackendClientHolder.instance.close()
        _BackendClientHolder.instance = None
