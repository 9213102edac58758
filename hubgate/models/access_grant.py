"""
Access Grant Model

One row per (principal, resource scope, capability) grant.

The table is an append-mostly ledger: rows are inserted by Grant and the
only later write is stamping ``revoked_at``/``revoked_by`` once. Together
with ``granted_at`` this makes "who could do what, when" reconstructable for
any past instant.

SAMPLE ACCESS GRANT:
┌──────────────────────────────────────────────────────────────────────────────┐
│ principal_id     │ "svc-contoso-rag"                                         │
│ principal_type   │ "ServiceIdentity"                                         │
│ resource_scope   │ "/tenants/contoso-rag-k3x9q2"                             │
│ capability       │ "invoke-own-resources"                                    │
│ granted_by       │ "svc-contoso-rag"                                         │
│ granted_at       │ 2026-03-01T09:00:00Z                                      │
│ revoked_at       │ null                                                      │
└──────────────────────────────────────────────────────────────────────────────┘
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import ClassVar

from sqlalchemy import DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hubgate.config.constants import Capability, PrincipalType
from hubgate.core.utils import ensure_utc, utc_now
from hubgate.models.base import Base, EnumValidationMixin


class AccessGrant(Base, EnumValidationMixin):
    """
    Access grant ledger row.

    ``granted_at`` is set in Python rather than by the database so that grants
    written within one transaction carry distinct, comparable instants.

    Attributes:
        id: Unique identifier (UUID v4)
        principal_id: Identity receiving the capability
        principal_type: User or ServiceIdentity
        resource_scope: Slash-separated scope path; covers descendants
        capability: Coarse capability name
        granted_by: Principal that issued the grant
        granted_by_type: Type of the granting principal
        granted_at: When the grant took effect
        revoked_at: When the grant stopped being effective (None = active)
        revoked_by: Principal that revoked it
    """

    __tablename__ = "access_grants"

    _enum_fields: ClassVar[dict[str, type[Enum]]] = {
        "principal_type": PrincipalType,
        "granted_by_type": PrincipalType,
        "capability": Capability,
    }

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    principal_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    principal_type: Mapped[str] = mapped_column(String(50), nullable=False)

    resource_scope: Mapped[str] = mapped_column(String(1024), nullable=False)

    capability: Mapped[str] = mapped_column(String(100), nullable=False)

    granted_by: Mapped[str] = mapped_column(String(255), nullable=False)

    granted_by_type: Mapped[str] = mapped_column(String(50), nullable=False)

    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    revoked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index(
            "ix_access_grants_lookup",
            "principal_id",
            "capability",
            "resource_scope",
        ),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<AccessGrant(principal={self.principal_id}, "
            f"capability={self.capability}, scope={self.resource_scope})>"
        )

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None

    def effective_at(self, at: datetime) -> bool:
        """Whether this grant was in force at the given instant."""
        granted_at = ensure_utc(self.granted_at)
        revoked_at = ensure_utc(self.revoked_at)
        if granted_at is None or granted_at > at:
            return False
        return revoked_at is None or revoked_at > at
