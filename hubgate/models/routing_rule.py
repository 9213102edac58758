"""
Routing Rule Model

Binds a logical model (or, for a default route, a whole model format) to a
physical deployment plus an ordered policy pipeline.

Rules are never edited in place. Changing the route for a model inserts a new
row and stamps ``superseded_at`` on the old one within the same transaction,
so a request that already read the old rule keeps a coherent view of it.
Partial unique indexes guarantee at most one active rule per logical model and
one active default rule per format.

SAMPLE ROUTING RULE:
┌──────────────────────────────────────────────────────────────────────────────┐
│ logical_model_id        │ 8c1e...  ("gpt-4.1-mini")                          │
│ physical_deployment_id  │ 51aa...  ("aoai-eastus2-gpt41mini")                │
│ policy                  │ [{"type": "InjectDefaultParam", ...},              │
│                         │  {"type": "SubstituteCredential", ...},            │
│                         │  {"type": "RateLimit", "calls": 100, ...}]         │
│ max_retries             │ 0                                                  │
│ is_default              │ false                                              │
│ superseded_at           │ null                                               │
└──────────────────────────────────────────────────────────────────────────────┘
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hubgate.models.base import Base, TimestampMixin
from hubgate.models.logical_model import LogicalModel
from hubgate.models.physical_deployment import PhysicalDeployment

_ACTIVE = text("superseded_at IS NULL")


class RoutingRule(Base, TimestampMixin):
    """
    Routing rule model.

    Attributes:
        id: Unique identifier (UUID v4)
        logical_model_id: Model this rule routes (None for a format default)
        model_format: Format this default rule covers (None for explicit rules)
        physical_deployment_id: Target backend
        policy: Ordered list of tagged policy steps
        policy_hash: Fingerprint of the canonical policy, used for idempotence
        max_retries: Dispatch retries on connect errors/timeouts (0 = none)
        is_default: Whether this is a format default route
        superseded_at: When a newer rule replaced this one (None = active)
    """

    __tablename__ = "routing_rules"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    logical_model_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("logical_models.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    model_format: Mapped[str | None] = mapped_column(String(100), nullable=True)

    physical_deployment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("physical_deployments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    policy: Mapped[list[dict[str, Any]]] = mapped_column(nullable=False)

    policy_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    superseded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    logical_model: Mapped[LogicalModel | None] = relationship(LogicalModel)

    deployment: Mapped[PhysicalDeployment] = relationship(PhysicalDeployment)

    __table_args__ = (
        Index(
            "uq_routing_rules_active_model",
            "logical_model_id",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
        Index(
            "uq_routing_rules_active_default",
            "model_format",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<RoutingRule(id={self.id}, model={self.logical_model_id}, "
            f"format={self.model_format}, active={self.superseded_at is None})>"
        )
