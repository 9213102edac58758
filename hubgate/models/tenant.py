"""
Tenant Model

A tenant is a spoke: a consuming team or application that attaches to the hub.

The tenant's ``unique_name`` is allocated deterministically from its
(subscription_id, resource_group) seed, so re-running onboarding for the same
seed converges on the same row instead of creating a duplicate.

SAMPLE TENANT RECORD:
┌──────────────────────────────────────────────────────────────────────────────┐
│ id               │ 3f2a1c00-7d3e-4b8f-9a51-0c6b2e8d4a10                      │
│ unique_name      │ "contoso-rag-k3x9q2"                                      │
│ display_name     │ "Contoso RAG"                                             │
│ subscription_id  │ "00000000-0000-0000-0000-000000000001"                    │
│ resource_group   │ "rg-contoso-rag"                                          │
│ allowed_models   │ ["gpt-4.1-mini", "text-embedding-3-large"]                │
│ principal_id     │ "svc-contoso-rag"                                         │
│ deleted_at       │ null                                                      │
└──────────────────────────────────────────────────────────────────────────────┘
"""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hubgate.models.base import Base, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from hubgate.models.connection import Connection


class Tenant(Base, TimestampMixin, SoftDeleteMixin):
    """
    Tenant (spoke) model.

    Attributes:
        id: Unique identifier (UUID v4)
        unique_name: Collision-resistant name derived from the tenant seed
        display_name: Human-readable name
        subscription_id: First half of the allocation seed
        resource_group: Second half of the allocation seed
        allowed_models: Logical model names the tenant may request connections for
        principal_id: The tenant's own automation ServiceIdentity, if any
        metadata_: Custom metadata

    Relationships:
        connections: Gateway connections owned by this tenant
    """

    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    unique_name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        doc="Allocated name, e.g. 'contoso-rag-k3x9q2'",
    )

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)

    subscription_id: Mapped[str] = mapped_column(String(100), nullable=False)

    resource_group: Mapped[str] = mapped_column(String(100), nullable=False)

    allowed_models: Mapped[list[str]] = mapped_column(
        default=list,
        nullable=False,
    )

    principal_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="ServiceIdentity used by the tenant's own automation",
    )

    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        default=dict,
        nullable=False,
    )

    connections: Mapped[list["Connection"]] = relationship(
        "Connection",
        back_populates="tenant",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_tenants_seed", "subscription_id", "resource_group", unique=True),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Tenant(id={self.id}, unique_name={self.unique_name})>"
