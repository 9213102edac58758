"""
Control Plane API Router

Aggregates all admin API routes.
"""

from fastapi import APIRouter

from hubgate.control_plane.api import auth
from hubgate.control_plane.api.v1 import access, connections, models, naming, tenants

router = APIRouter()

# Authentication
router.include_router(
    auth.router, prefix="/auth", tags=["Control Plane: Authentication"]
)

# V1 Admin APIs
router.include_router(
    tenants.router,
    prefix="/tenants",
    tags=["Control Plane: Tenants"],
)
router.include_router(
    connections.router,
    tags=["Control Plane: Connections"],
)
router.include_router(
    models.router,
    prefix="/models",
    tags=["Control Plane: Model Registry"],
)
router.include_router(
    access.router,
    prefix="/access",
    tags=["Control Plane: Access Policy"],
)
router.include_router(
    naming.router,
    prefix="/naming",
    tags=["Control Plane: Naming"],
)
