"""
Gateway Plane API Router

Azure-OpenAI compatible surface - the entry point for tenant workloads.
"""

from fastapi import APIRouter

from hubgate.gateway_plane.api.v1 import openai

router = APIRouter()

# OpenAI-compatible routes: /openai/deployments/{model}/{path}
router.include_router(openai.router, prefix="/openai", tags=["Gateway Plane: OpenAI"])
