"""
Provisioning Service

Client for the external provisioning engine, plus provision-then-register.

The engine owns real infrastructure. HubGate only submits a declarative
description and polls until the operation is terminal:

    POST {engine}/deployments            → 202 {"operation_id": "..."}
    GET  {engine}/operations/{id}        → {"status": "Running"}
                                         → {"status": "Succeeded",
                                            "endpoint_url": "...",
                                            "principal_id": "...",
                                            "auth_scope": "..."}
"""

import asyncio
import time
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.constants import ProvisioningState
from hubgate.config.settings import settings
from hubgate.control_plane.services.registry_service import ModelRegistryService
from hubgate.core.exceptions import ProvisioningError
from hubgate.core.logging import logger
from hubgate.schemas.provisioning import (
    DeploymentDescription,
    ProvisionedDeployment,
    ProvisionRequest,
)
from hubgate.schemas.registry import (
    LogicalModelSpec,
    PhysicalDeploymentSpec,
    RegisterRequest,
    RegisterResponse,
)

TERMINAL_FAILURES = {ProvisioningState.FAILED.value, ProvisioningState.CANCELED.value}


class ProvisioningClient:
    """Async HTTP client for the provisioning engine."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        poll_interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.PROVISIONING_ENGINE_URL).rstrip("/")
        self.poll_interval_seconds = (
            poll_interval_seconds
            if poll_interval_seconds is not None
            else settings.PROVISIONING_POLL_INTERVAL_SECONDS
        )
        self.timeout_seconds = timeout_seconds or settings.PROVISIONING_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(30.0),
            transport=self.transport,
        )

    async def provision(self, description: DeploymentDescription) -> ProvisionedDeployment:
        """
        Submit a deployment and wait for it to finish.

        Raises:
            ProvisioningError: Engine unreachable, operation failed, or timed out
        """
        async with self._client() as client:
            operation_id = await self._submit(client, description)
            return await self._wait(client, operation_id)

    async def _submit(self, client: httpx.AsyncClient, description: DeploymentDescription) -> str:
        try:
            response = await client.post("/deployments", json=description.model_dump())
            response.raise_for_status()
            operation_id = response.json()["operation_id"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error(
                "Provisioning submit failed",
                backend_id=description.backend_id,
                error=str(e),
            )
            raise ProvisioningError(f"Provisioning submit failed: {e}") from e

        logger.info(
            "Provisioning submitted",
            operation_id=operation_id,
            backend_id=description.backend_id,
            region=description.region,
        )
        return operation_id

    async def _wait(self, client: httpx.AsyncClient, operation_id: str) -> ProvisionedDeployment:
        deadline = time.monotonic() + self.timeout_seconds

        while True:
            try:
                response = await client.get(f"/operations/{operation_id}")
                response.raise_for_status()
                body = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise ProvisioningError(
                    f"Provisioning status check failed: {e}",
                    operation_id=operation_id,
                ) from e

            state = body.get("status")
            if state == ProvisioningState.SUCCEEDED.value:
                logger.info("Provisioning succeeded", operation_id=operation_id)
                try:
                    return ProvisionedDeployment(
                        operation_id=operation_id,
                        endpoint_url=body.get("endpoint_url"),
                        principal_id=body.get("principal_id"),
                        auth_scope=body.get("auth_scope"),
                    )
                except ValueError as e:
                    raise ProvisioningError(
                        "Provisioning succeeded without an endpoint",
                        operation_id=operation_id,
                        state=state,
                    ) from e

            if state in TERMINAL_FAILURES:
                raise ProvisioningError(
                    body.get("error") or f"Provisioning {state.lower()}",
                    operation_id=operation_id,
                    state=state,
                )

            if time.monotonic() >= deadline:
                raise ProvisioningError(
                    f"Provisioning did not finish within {self.timeout_seconds}s",
                    operation_id=operation_id,
                    state=state,
                )
            await asyncio.sleep(self.poll_interval_seconds)


class ProvisioningService:
    """Provision capacity through the engine, then register the route."""

    def __init__(
        self,
        session: AsyncSession,
        client: Optional[ProvisioningClient] = None,
    ) -> None:
        self.session = session
        self.client = client or ProvisioningClient()
        self.registry = ModelRegistryService(session)

    async def provision_and_register(
        self,
        request: ProvisionRequest,
        actor: str,
    ) -> RegisterResponse:
        await self.registry.check_placement(
            request.name, request.allowed_regions, request.region
        )
        deployment_name = request.deployment_name or request.name
        provisioned = await self.client.provision(
            DeploymentDescription(
                model=request.name,
                format=request.format,
                version=request.version,
                region=request.region,
                capacity_units=request.capacity_units,
                deployment_name=deployment_name,
                backend_id=request.backend_id,
            )
        )
        return await self.registry.register(
            RegisterRequest(
                model=LogicalModelSpec(
                    name=request.name,
                    format=request.format,
                    version=request.version,
                    allowed_regions=request.allowed_regions,
                ),
                deployment=PhysicalDeploymentSpec(
                    backend_id=request.backend_id,
                    deployment_name=deployment_name,
                    region=request.region,
                    capacity_units=request.capacity_units,
                    endpoint_url=provisioned.endpoint_url,
                    auth_scope=provisioned.auth_scope or request.auth_scope,
                ),
                policy=request.policy,
                max_retries=request.max_retries,
            ),
            actor=actor,
        )
