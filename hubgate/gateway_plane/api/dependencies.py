"""
Gateway Plane API Dependencies

Connection credential extraction for gateway requests.

The key may arrive in the ``CONNECTION_KEY_HEADER`` header (``api-key`` by
default, what Azure-OpenAI SDKs send) or as ``Authorization: Bearer``.
Validation itself happens in the router so that a missing key and an
unknown key fail the same way.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hubgate.config.settings import settings
from hubgate.db.session import get_db


async def get_connection_credential(request: Request) -> Optional[str]:
    """Pull the caller's Connection key from the request headers.

    Args:
        request: Incoming request

    Returns:
        The presented key, or None when no credential was sent
    """
    key = request.headers.get(settings.CONNECTION_KEY_HEADER)
    if key:
        return key.strip()

    authorization = request.headers.get("authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None

    return None


# Type aliases for common dependency patterns
ConnectionCredential = Annotated[Optional[str], Depends(get_connection_credential)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
