"""
Shared test helpers: constants, fakes and request payload builders.
"""

import json
from typing import Any, Callable, Optional

import httpx

from hubgate.config.constants import PrincipalType
from hubgate.core.security import create_access_token

HUB_ADMIN_ID = "ops-hub-admin"
# Epoch second on a 60s window boundary
CLOCK_START = 1_700_000_040.0

CONTROL_PLANE = "/control-plane/api/v1"
GATEWAY = "/gateway/api/v1/openai"


class FakeClock:
    """Settable time source for rate-limit windows."""

    def __init__(self, now: float = CLOCK_START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """
    In-process stand-in for every physical deployment.

    Records each request it receives. ``responder`` decides the reply and
    defaults to a chat completion echoing the request path.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder: Optional[Callable[[httpx.Request], httpx.Response]] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responder is not None:
            return self.responder(request)
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-test",
                "object": "chat.completion",
                "path": request.url.path,
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "hi"}}],
            },
            headers={"x-ms-region": "test"},
        )

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content) if self.last.content else None


def auth_headers(
    principal_id: str,
    principal_type: PrincipalType = PrincipalType.USER,
) -> dict[str, str]:
    """Create authorization headers for a principal."""
    token = create_access_token(principal_id, principal_type)
    return {"Authorization": f"Bearer {token}"}


def register_payload(
    name: str = "gpt-4.1-mini",
    backend_id: str = "aoai-eus2-gpt41mini",
    region: str = "eastus2",
    model_format: str = "OpenAI",
    policy: Optional[list[dict]] = None,
    allowed_regions: Optional[list[str]] = None,
    max_retries: int = 0,
    endpoint_url: str = "https://aoai-eus2.example.com",
    deployment_name: Optional[str] = None,
) -> dict:
    """Body for POST /models."""
    return {
        "model": {
            "name": name,
            "format": model_format,
            "version": "2025-04-14",
            "allowed_regions": allowed_regions,
        },
        "deployment": {
            "backend_id": backend_id,
            "deployment_name": deployment_name,
            "region": region,
            "capacity_units": 50,
            "endpoint_url": endpoint_url,
            "auth_scope": "https://cognitiveservices.azure.com",
        },
        "policy": policy,
        "max_retries": max_retries,
    }


def tenant_config(
    display_name: str = "Contoso RAG",
    resource_group: str = "rg-contoso-rag",
    allowed_models: Optional[list[str]] = None,
    principal_id: Optional[str] = "svc-contoso-rag",
    attach_gateway: bool = True,
    **extra: Any,
) -> dict:
    """One TenantConfig record for POST /tenants/onboard."""
    return {
        "display_name": display_name,
        "subscription_id": "00000000-0000-0000-0000-000000000001",
        "resource_group": resource_group,
        "allowed_models": allowed_models if allowed_models is not None else ["gpt-4.1-mini"],
        "principal_id": principal_id,
        "attach_gateway": attach_gateway,
        **extra,
    }


def policy_steps(
    calls: int = 100,
    window_seconds: int = 60,
    scope: str = "connection",
    credential_method: str = "bearer",
    api_version: str = "2024-10-21",
) -> list[dict]:
    """An explicit three-step policy."""
    return [
        {"type": "InjectDefaultParam", "name": "api-version", "value": api_version, "location": "query"},
        {"type": "SubstituteCredential", "method": credential_method},
        {"type": "RateLimit", "calls": calls, "window_seconds": window_seconds, "scope": scope},
    ]


def gateway_url(model: str = "gpt-4.1-mini", path: str = "chat/completions") -> str:
    return f"{GATEWAY}/deployments/{model}/{path}"


CHAT_BODY = {"messages": [{"role": "user", "content": "hello"}]}
