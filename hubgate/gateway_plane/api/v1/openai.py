"""
OpenAI-Compatible Gateway Endpoint

Single public entry point for tenant workloads. Speaks the Azure OpenAI
data-plane URL shape so tenant SDKs work unchanged:

    {any method} /gateway/api/v1/openai/deployments/{model}/{path}
    {any method} /gateway/api/v1/openai/deployments/{model}

Flow:
1. Extract the Connection key (api-key header or Authorization: Bearer)
2. Parse the JSON body, if any
3. Route through the GatewayRouter (auth, allow-list, resolve, policy, dispatch)
4. Return the backend body and status unmodified, plus routing headers

Every rejection is raised as a HubGateException and rendered by the global
exception handler, so the session rolls back and nothing is dispatched.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from hubgate.config.constants import BACKEND_REGION_HEADER, REQUEST_ID_HEADER
from hubgate.core.exceptions import ValidationError
from hubgate.core.logging import logger
from hubgate.core.utils import generate_short_id
from hubgate.gateway_plane.api.dependencies import ConnectionCredential, DbSession
from hubgate.gateway_plane.router.service import GatewayRouter, InboundRequest

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    """Extract client IP, considering X-Forwarded-For from proxies."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


async def _read_json_body(request: Request, request_id: str) -> Optional[Any]:
    """Parse the request body as JSON; an empty body is None.

    Raises:
        ValidationError: Body present but not valid JSON
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(
            "Invalid request body",
            request_id=request_id,
            http_method=request.method,
            error=str(e),
        )
        raise ValidationError(f"Invalid JSON body: {e}") from e


async def _handle_gateway_request(
    request: Request,
    model: str,
    path: str,
    credential: Optional[str],
    db: DbSession,
) -> Response:
    """
    Core handler for gateway requests.

    Args:
        request: Incoming FastAPI request
        model: Logical model name from the URL
        path: Remainder of the path after the model (e.g. chat/completions)
        credential: Presented Connection key, if any
        db: Database session

    Returns:
        Backend response with X-Request-ID and X-Backend-Region headers
    """
    request_id = getattr(request.state, "request_id", None) or generate_short_id("req")

    logger.info(
        "Received gateway request",
        request_id=request_id,
        http_method=request.method,
        model=model,
        path=path,
        client_ip=_get_client_ip(request),
    )

    body = await _read_json_body(request, request_id)

    result = await GatewayRouter(db).route(
        InboundRequest(
            request_id=request_id,
            method=request.method.upper(),
            model=model,
            path=path,
            query=dict(request.query_params),
            headers=dict(request.headers),
            body=body,
            credential=credential,
        )
    )

    headers = dict(result.response.headers)
    headers.update(result.extra_headers)
    headers[REQUEST_ID_HEADER] = request_id
    headers[BACKEND_REGION_HEADER] = result.route.region

    if result.response.body is None:
        return Response(status_code=result.response.status_code, headers=headers)
    return JSONResponse(
        content=result.response.body,
        status_code=result.response.status_code,
        headers=headers,
    )


# =============================================================================
# Route handlers for all HTTP methods
# =============================================================================

# POST routes (chat/completions, embeddings, ...)
@router.post("/deployments/{model}")
@router.post("/deployments/{model}/{path:path}")
async def gateway_post(
    request: Request,
    model: str,
    credential: ConnectionCredential,
    db: DbSession,
    path: str = "",
) -> Response:
    """
    Route POST requests to the model's deployment.

    Path is preserved: POST /openai/deployments/gpt-4o/chat/completions
    -> {endpoint}/openai/deployments/{deployment_name}/chat/completions

    Requires: api-key: <connection key> (or Authorization: Bearer)
    """
    return await _handle_gateway_request(request, model, path, credential, db)


# GET routes
@router.get("/deployments/{model}")
@router.get("/deployments/{model}/{path:path}")
async def gateway_get(
    request: Request,
    model: str,
    credential: ConnectionCredential,
    db: DbSession,
    path: str = "",
) -> Response:
    """
    Route GET requests to the model's deployment.

    Query parameters are preserved.
    """
    return await _handle_gateway_request(request, model, path, credential, db)


# PUT routes
@router.put("/deployments/{model}")
@router.put("/deployments/{model}/{path:path}")
async def gateway_put(
    request: Request,
    model: str,
    credential: ConnectionCredential,
    db: DbSession,
    path: str = "",
) -> Response:
    """Route PUT requests to the model's deployment."""
    return await _handle_gateway_request(request, model, path, credential, db)


# PATCH routes
@router.patch("/deployments/{model}")
@router.patch("/deployments/{model}/{path:path}")
async def gateway_patch(
    request: Request,
    model: str,
    credential: ConnectionCredential,
    db: DbSession,
    path: str = "",
) -> Response:
    """Route PATCH requests to the model's deployment."""
    return await _handle_gateway_request(request, model, path, credential, db)


# DELETE routes
@router.delete("/deployments/{model}")
@router.delete("/deployments/{model}/{path:path}")
async def gateway_delete(
    request: Request,
    model: str,
    credential: ConnectionCredential,
    db: DbSession,
    path: str = "",
) -> Response:
    """Route DELETE requests to the model's deployment."""
    return await _handle_gateway_request(request, model, path, credential, db)
