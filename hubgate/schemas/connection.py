"""
Connection Schemas

Request/response models for the connection broker.

The plain key appears only in ConnectionCreatedResponse (issue and rotate).
Store it securely; it cannot be retrieved again.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hubgate.schemas.common import BaseSchema


class ConnectionIssueRequest(BaseModel):
    """Issue a connection for a tenant."""

    models: list[str] = Field(..., min_length=1, description="Requested logical models")
    name: str = Field("hub-gateway", min_length=1, max_length=255)
    gateway_target: Optional[str] = Field(
        None,
        max_length=2048,
        description="Gateway base URL (defaults to GATEWAY_PUBLIC_URL)",
    )


class ConnectionRotateRequest(BaseModel):
    """Rotate a connection key."""

    grace_seconds: Optional[int] = Field(
        None,
        ge=0,
        le=86400,
        description="How long the old key keeps working (defaults to CONNECTION_ROTATION_GRACE_SECONDS)",
    )


class ConnectionResponse(BaseSchema):
    """A connection without its key."""

    id: str
    tenant_id: str
    name: str
    gateway_target: str
    key_prefix: str
    key_version: int
    model_allow_list: list[str]
    is_revoked: bool
    revoked_at: Optional[datetime] = None
    rotated_at: Optional[datetime] = None
    previous_key_valid_until: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    usage_count: int
    created_at: datetime


class ConnectionCreatedResponse(ConnectionResponse):
    """A connection together with its freshly generated key (shown once)."""

    key: str


class ConnectionContext(BaseModel):
    """What the gateway knows about a caller once its key is validated."""

    connection_id: str
    tenant_id: str
    tenant_name: str
    model_allow_list: tuple[str, ...]
    key_version: int
