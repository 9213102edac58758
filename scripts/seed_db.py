#!/usr/bin/env python3
"""
Database Seeder

Creates a small working hub for development and testing:
- a format default route for "OpenAI" models
- two registered models with explicit routes, one served by the default
- one onboarded demo tenant with a gateway connection

Re-running converges to the same state: registration and onboarding are
idempotent, and the connection is only issued once.

Run from project root:
    python -m scripts.seed_db
"""

import asyncio

from hubgate.config.settings import settings
from hubgate.control_plane.services.registry_service import ModelRegistryService
from hubgate.control_plane.services.tenant_service import TenantOnboarder
from hubgate.core.logging import logger
from hubgate.db.session import init_db, session_scope
from hubgate.schemas.registry import (
    DefaultRouteRequest,
    LogicalModelSpec,
    PhysicalDeploymentSpec,
    RegisterRequest,
)
from hubgate.schemas.tenant import TenantConfig

SEED_ACTOR = "seed-script"
AUTH_SCOPE = "https://cognitiveservices.azure.com"

DEMO_DEPLOYMENTS = [
    RegisterRequest(
        model=LogicalModelSpec(name="gpt-4.1-mini", format="OpenAI", version="2025-04-14"),
        deployment=PhysicalDeploymentSpec(
            backend_id="aoai-eus2-gpt41mini",
            region="eastus2",
            capacity_units=50,
            endpoint_url="http://localhost:9001",
            auth_scope=AUTH_SCOPE,
        ),
    ),
    RegisterRequest(
        model=LogicalModelSpec(
            name="text-embedding-3-large",
            format="OpenAI",
            version="1",
            allowed_regions=["eastus2", "swedencentral"],
        ),
        deployment=PhysicalDeploymentSpec(
            backend_id="aoai-swc-embed3l",
            region="swedencentral",
            capacity_units=20,
            endpoint_url="http://localhost:9002",
            auth_scope=AUTH_SCOPE,
        ),
    ),
    # No deployment: served by the OpenAI default route
    RegisterRequest(
        model=LogicalModelSpec(name="gpt-4o-mini", format="OpenAI", version="2024-07-18"),
    ),
]

DEMO_DEFAULT_ROUTE = DefaultRouteRequest(
    format="OpenAI",
    deployment=PhysicalDeploymentSpec(
        backend_id="aoai-eus2-shared",
        region="eastus2",
        capacity_units=100,
        endpoint_url="http://localhost:9000",
        auth_scope=AUTH_SCOPE,
    ),
)

DEMO_TENANT = TenantConfig(
    display_name="Demo RAG",
    subscription_id="00000000-0000-0000-0000-000000000001",
    resource_group="rg-demo-rag",
    name_prefix="demo-rag",
    allowed_models=["gpt-4.1-mini", "text-embedding-3-large"],
    principal_id="svc-demo-rag",
    attach_gateway=True,
)


async def seed_database() -> None:
    """Seed the database with a demo hub."""
    logger.info("Starting database seeding...")

    await init_db()

    async with session_scope() as session:
        registry = ModelRegistryService(session)

        result = await registry.register_default(DEMO_DEFAULT_ROUTE, actor=SEED_ACTOR)
        logger.info(
            "Seeded default route",
            model_format=DEMO_DEFAULT_ROUTE.format,
            created=result.created,
        )

        for request in DEMO_DEPLOYMENTS:
            result = await registry.register(request, actor=SEED_ACTOR)
            logger.info(
                "Seeded model",
                model=request.model.name,
                routed_via_default=result.rule is None,
                created=result.created,
            )

        onboarder = TenantOnboarder(session)
        [onboarded] = await onboarder.onboard([DEMO_TENANT], actor=SEED_ACTOR)
        logger.info(
            "Seeded tenant",
            tenant=onboarded.tenant.unique_name,
            created=onboarded.created,
        )

    # The key is shown once and must never reach the logs
    if onboarded.connection:
        print(f"Connection key for {onboarded.tenant.unique_name}: {onboarded.connection.key}")
        print(f"Gateway target: {settings.GATEWAY_PUBLIC_URL}")
    else:
        print(f"{onboarded.tenant.unique_name} already has an active connection")

    logger.info("Database seeding completed!")


if __name__ == "__main__":
    asyncio.run(seed_database())
