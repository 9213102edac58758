"""
HubGate Application Entry Point

FastAPI application setup with all routers and middleware.

One service, two planes:
- Control Plane: Admin APIs for tenants, model registry, connections, access
- Gateway Plane: Azure-OpenAI compatible entry point for tenant workloads
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hubgate import __version__
from hubgate.cache.redis_client import close_redis, init_redis, redis_enabled
from hubgate.config.settings import settings
from hubgate.control_plane.api.router import router as control_plane_router
from hubgate.db.migrations import run_migrations
from hubgate.db.session import close_db, init_db
from hubgate.gateway_plane.api.router import router as gateway_plane_router
from hubgate.gateway_plane.dispatch import close_backend_client, init_backend_client
from hubgate.middleware.error_handler import setup_exception_handlers
from hubgate.middleware.logging import LoggingMiddleware


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    await init_db()
    await run_migrations()  # Run migrations if RUN_MIGRATIONS_ON_STARTUP=true
    await init_redis()
    await init_backend_client()
    yield
    # Shutdown
    await close_backend_client()
    await close_db()
    await close_redis()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Hub-and-spoke AI resource broker.\n\n"
            "Provides:\n"
            "- **Control Plane**: tenant onboarding, model registry, connections, "
            "access grants\n"
            "- **Gateway**: one OpenAI-compatible endpoint that routes each request "
            "to the deployment registered for its model\n\n"
            "Tenant SDKs point at `/gateway/api/v1/openai` and authenticate with "
            "their connection key in the `api-key` header."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS Middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom Middleware
    application.add_middleware(LoggingMiddleware)

    # Exception Handlers
    setup_exception_handlers(application)

    # Routers
    # Control Plane - Admin APIs
    application.include_router(
        control_plane_router,
        prefix="/control-plane/api/v1",
    )

    # Gateway Plane - request routing
    application.include_router(
        gateway_plane_router,
        prefix="/gateway/api/v1",
    )

    # Health Check
    @application.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "hubgate",
            "version": __version__,
            "components": {
                "control_plane": "healthy",
                "gateway_plane": "healthy",
            },
        }

    @application.get("/health/detailed", tags=["Health"])
    async def detailed_health_check() -> dict:
        """Detailed health check with component status."""
        return {
            "status": "healthy",
            "service": "hubgate",
            "version": __version__,
            "environment": settings.APP_ENV,
            "components": {
                "database": {"status": "healthy"},
                "redis": {
                    "status": "healthy"
                    if redis_enabled()
                    else "disabled",
                },
                "control_plane": {"status": "healthy"},
                "gateway_plane": {
                    "status": "healthy",
                    "api_name": settings.GATEWAY_API_NAME,
                    "rate_limit_backend": settings.RATE_LIMIT_BACKEND,
                    "backend_timeout_seconds": settings.BACKEND_TIMEOUT_SECONDS,
                },
            },
        }

    return application


app = create_application()
