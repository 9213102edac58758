"""
Logical Model

A caller-facing model name (e.g. "gpt-4.1-mini") independent of where it runs.
Within one hub the name is unique.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hubgate.models.base import Base, TimestampMixin


class LogicalModel(Base, TimestampMixin):
    """
    Logical model registered with the hub.

    Attributes:
        id: Unique identifier (UUID v4)
        name: Caller-facing name, unique within the hub
        format: Provider family (e.g. "OpenAI")
        version: Model version string
        allowed_regions: Regions this model may be deployed to (None = any)
        decommissioned_at: Set once the model is retired
    """

    __tablename__ = "logical_models"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    format: Mapped[str] = mapped_column(String(100), nullable=False)

    version: Mapped[str] = mapped_column(String(100), nullable=False)

    allowed_regions: Mapped[list[str] | None] = mapped_column(nullable=True)

    decommissioned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<LogicalModel(name={self.name}, format={self.format})>"

    @property
    def is_decommissioned(self) -> bool:
        return self.decommissioned_at is not None
