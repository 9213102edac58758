"""
Auth Schemas

Models describing the authenticated control-plane caller.
"""

from pydantic import BaseModel

from hubgate.config.constants import PrincipalType


class CurrentPrincipal(BaseModel):
    """Principal decoded from a control-plane bearer token."""

    id: str
    type: PrincipalType
    is_hub_admin: bool = False
