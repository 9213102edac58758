"""
Physical Deployment Model

A concrete, capacity-provisioned backend. Several logical models may route to
the same deployment; the backend-side deployment name is what appears in the
dispatched URL.
"""

import uuid
from typing import ClassVar
from enum import Enum

from sqlalchemy import Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hubgate.config.constants import DeploymentStatus
from hubgate.models.base import Base, EnumValidationMixin, TimestampMixin


class PhysicalDeployment(Base, TimestampMixin, EnumValidationMixin):
    """
    Physical deployment model.

    Attributes:
        id: Unique identifier (UUID v4)
        backend_id: Stable external identifier of the backend
        deployment_name: Name of the deployment on the backend
        region: Region the capacity lives in
        capacity_units: Provisioned capacity (e.g. thousands of tokens/minute)
        endpoint_url: Base URL requests are dispatched to
        auth_scope: Audience of the backend-scoped credential
        status: active or decommissioned
    """

    __tablename__ = "physical_deployments"

    _enum_fields: ClassVar[dict[str, type[Enum]]] = {
        "status": DeploymentStatus,
    }

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    backend_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    deployment_name: Mapped[str] = mapped_column(String(255), nullable=False)

    region: Mapped[str] = mapped_column(String(100), nullable=False)

    capacity_units: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    endpoint_url: Mapped[str] = mapped_column(String(2048), nullable=False)

    auth_scope: Mapped[str] = mapped_column(String(512), nullable=False)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DeploymentStatus.ACTIVE.value,
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<PhysicalDeployment(backend_id={self.backend_id}, region={self.region})>"

    @property
    def is_active(self) -> bool:
        return self.status == DeploymentStatus.ACTIVE.value
