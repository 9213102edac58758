"""
Authentication Endpoints

Identity of the control-plane caller. Tokens are minted out of band
(scripts/issue_token.py) for users and service identities.
"""

from fastapi import APIRouter

from hubgate.control_plane.api.dependencies import CurrentCaller
from hubgate.schemas.auth import CurrentPrincipal


router = APIRouter()


@router.get("/me", response_model=CurrentPrincipal)
async def get_me(current_principal: CurrentCaller) -> CurrentPrincipal:
    """Return the principal the bearer token speaks for."""
    return current_principal
