"""
Base Model Classes

Declarative base and shared mixins for all HubGate SQLAlchemy models.

JSON columns map to JSONB on PostgreSQL and to plain JSON elsewhere, so the
same models run against SQLite for local development and tests.
"""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from sqlalchemy import JSON, DateTime, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.functions import now

from hubgate.core.utils import utc_now

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Maps ``dict[str, Any]`` and ``list[Any]`` annotations to JSONB/JSON.
    """

    type_annotation_map = {
        dict[str, Any]: JSONType,
        list[Any]: JSONType,
        list[str]: JSONType,
        list[dict[str, Any]]: JSONType,
    }


class TimestampMixin:
    """
    Mixin that adds automatic timestamp tracking to models.

    - created_at: Set on INSERT (database default for raw SQL inserts)
    - updated_at: Refreshed on every ORM UPDATE

    Stamped in Python so the values stay loaded after a flush.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """
    Mixin that adds soft delete capability to models.

    Soft-deleted rows keep their history (connections, grants) intact.
    Queries should filter with ``Model.deleted_at.is_(None)``.
    """

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    @property
    def is_deleted(self) -> bool:
        """True once the record has been soft deleted."""
        return self.deleted_at is not None


class EnumValidationMixin:
    """
    Mixin that validates string columns against Enum classes before writes.

    Example:
        class AccessGrant(Base, EnumValidationMixin):
            _enum_fields: ClassVar[dict[str, type[Enum]]] = {
                "capability": Capability,
            }
    """

    _enum_fields: ClassVar[dict[str, type[Enum]]] = {}

    def validate_enum_fields(self) -> None:
        """
        Validate all enum fields have valid values.

        Raises:
            ValueError: If any enum field has an invalid value
        """
        for field_name, enum_class in self._enum_fields.items():
            value = getattr(self, field_name, None)
            if value is not None:
                valid_values = {e.value for e in enum_class}
                if value not in valid_values:
                    raise ValueError(
                        f"Invalid value '{value}' for field '{field_name}'. "
                        f"Must be one of: {', '.join(sorted(valid_values))}"
                    )

    @classmethod
    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Register validation event listeners when subclass is created."""
        super().__init_subclass__(**kwargs)

        if cls._enum_fields:
            # Signature: (mapper, connection, target)
            @event.listens_for(cls, "before_insert", propagate=True)
            def validate_before_insert(*args: Any) -> None:
                args[2].validate_enum_fields()

            @event.listens_for(cls, "before_update", propagate=True)
            def validate_before_update(*args: Any) -> None:
                args[2].validate_enum_fields()
