"""
Connection Model

The credential object handed to a tenant: it binds the tenant to the gateway
with an ordered allow-list of logical models.

Key Format: "hgk-{random_urlsafe}" (prefix configurable)
- The plain key is shown ONLY ONCE, on issue and on rotate
- Only the SHA-256 hash is stored; ``key_prefix`` is a masked display form
- Rotation replaces the hash but keeps ``id`` and ``model_allow_list``

SAMPLE CONNECTION RECORD:
┌──────────────────────────────────────────────────────────────────────────────┐
│ id                        │ 9d0e8400-e29b-41d4-a716-446655440020             │
│ tenant_id                 │ 3f2a1c00-7d3e-4b8f-9a51-0c6b2e8d4a10             │
│ name                      │ "hub-gateway"                                    │
│ gateway_target            │ "https://gw.example.com/gateway/api/v1/openai"   │
│ key_hash                  │ "a1b2c3d4e5f6..."  (SHA-256, 64 hex chars)       │
│ key_prefix                │ "hgk-Ab12...Zz9q"                                │
│ key_version               │ 2                                                │
│ model_allow_list          │ ["gpt-4.1-mini", "text-embedding-3-large"]       │
│ previous_key_hash         │ null                                             │
│ previous_key_valid_until  │ null                                             │
│ is_revoked                │ false                                            │
│ usage_count               │ 15234                                            │
└──────────────────────────────────────────────────────────────────────────────┘
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hubgate.core.utils import ensure_utc, utc_now
from hubgate.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hubgate.models.tenant import Tenant


class Connection(Base, TimestampMixin):
    """
    Connection model for gateway authentication.

    Security Notes:
    - Never store the actual key; only its SHA-256 hash
    - ``previous_key_hash`` is only honoured until ``previous_key_valid_until``
    - Revocation is permanent

    Attributes:
        id: Unique identifier, stable across rotations
        tenant_id: Owning tenant
        name: Human-readable name
        gateway_target: Base URL of the gateway the key is valid for
        key_hash: SHA-256 hash of the current key
        key_prefix: Masked display form of the current key
        key_version: Incremented on every rotation
        model_allow_list: Ordered logical model names (order is display-only)
        previous_key_hash: Hash of the key replaced by the last rotation
        previous_key_valid_until: End of the previous key's grace period
        rotated_at: When the key was last rotated
        is_revoked: Whether the connection is permanently unusable
        revoked_at: When it was revoked
        last_used_at: When the connection last authenticated
        usage_count: Successful authentications
    """

    __tablename__ = "connections"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    gateway_target: Mapped[str] = mapped_column(String(2048), nullable=False)

    # ==========================================================================
    # KEY CREDENTIALS (SECURITY-SENSITIVE)
    # ==========================================================================

    key_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    key_prefix: Mapped[str] = mapped_column(String(20), nullable=False)

    key_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    previous_key_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )

    previous_key_valid_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    rotated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ==========================================================================
    # ALLOW LIST
    # ==========================================================================

    model_allow_list: Mapped[list[str]] = mapped_column(
        default=list,
        nullable=False,
    )

    # ==========================================================================
    # STATUS AND USAGE
    # ==========================================================================

    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        default=dict,
        nullable=False,
    )

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="connections")

    __table_args__ = (
        Index("ix_connections_tenant_status", "tenant_id", "is_revoked"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Connection(id={self.id}, name={self.name}, v={self.key_version})>"

    def accepts_previous_key(self, at: datetime | None = None) -> bool:
        """Whether the pre-rotation key is still inside its grace period."""
        valid_until = ensure_utc(self.previous_key_valid_until)
        if self.previous_key_hash is None or valid_until is None:
            return False
        return (at or utc_now()) < valid_until
