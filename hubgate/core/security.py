"""
Security Utilities

Control-plane tokens, connection key generation, and backend token minting.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

from hubgate.config.constants import PrincipalType
from hubgate.config.settings import settings


# JWT configuration
ALGORITHM = "HS256"


def create_access_token(
    principal_id: str,
    principal_type: PrincipalType,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[dict[str, Any]] = None,
) -> str:
    """Create a control-plane access token for a typed principal.

    Args:
        principal_id: Identity the token speaks for
        principal_type: User or ServiceIdentity
        expires_delta: Optional custom expiration time
        extra_claims: Additional claims to embed

    Returns:
        Encoded JWT token
    """
    to_encode: dict[str, Any] = dict(extra_claims or {})
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update(
        {
            "sub": principal_id,
            "principal_type": PrincipalType(principal_type).value,
            "exp": expire,
            "type": "access",
        }
    )
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Decode and validate a control-plane JWT.

    Args:
        token: JWT token to decode

    Returns:
        Decoded token payload or None if invalid
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None


def mint_backend_token(
    principal_id: str,
    audience: str,
    ttl_seconds: Optional[int] = None,
) -> str:
    """Mint a short-lived, backend-scoped credential for the gateway identity.

    A fresh token is minted per request; nothing is cached between requests.

    Args:
        principal_id: Gateway service identity
        audience: Backend auth scope the token is valid for
        ttl_seconds: Lifetime, defaults to settings.BACKEND_TOKEN_TTL_SECONDS

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    ttl = ttl_seconds if ttl_seconds is not None else settings.BACKEND_TOKEN_TTL_SECONDS
    claims = {
        "sub": principal_id,
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(claims, settings.BACKEND_TOKEN_SIGNING_KEY, algorithm=ALGORITHM)


def decode_backend_token(token: str, audience: str) -> Optional[dict[str, Any]]:
    """Validate a backend token against its expected audience."""
    try:
        return jwt.decode(
            token,
            settings.BACKEND_TOKEN_SIGNING_KEY,
            algorithms=[ALGORITHM],
            audience=audience,
        )
    except JWTError:
        return None


def generate_api_key(prefix: Optional[str] = None) -> tuple[str, str]:
    """Generate a new connection key and its hash.

    Args:
        prefix: Optional custom prefix. Defaults to settings.CONNECTION_KEY_PREFIX.

    Returns:
        Tuple of (plain_key, hashed_key)
        - plain_key: The key handed to the tenant (shown only once)
        - hashed_key: The hash to store in the database
    """
    key_body = secrets.token_urlsafe(32)
    key_prefix = prefix or settings.CONNECTION_KEY_PREFIX
    plain_key = f"{key_prefix}{key_body}"
    return plain_key, hash_api_key(plain_key)


def hash_api_key(api_key: str) -> str:
    """Hash a connection key for storage and lookup.

    Args:
        api_key: Plain key

    Returns:
        SHA-256 hex digest of the key
    """
    return hashlib.sha256(api_key.encode()).hexdigest()


def get_api_key_prefix(api_key: str) -> str:
    """Get the display prefix of a key (e.g., "hgk-AbCd...wxYz")."""
    if len(api_key) > 12:
        return f"{api_key[:8]}...{api_key[-4:]}"
    return api_key[:8] + "..."
