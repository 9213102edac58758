"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 09:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("unique_name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("subscription_id", sa.String(100), nullable=False),
        sa.Column("resource_group", sa.String(100), nullable=False),
        sa.Column("allowed_models", postgresql.JSONB(), nullable=False),
        sa.Column("principal_id", sa.String(255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tenants_unique_name", "tenants", ["unique_name"], unique=True)
    op.create_index(
        "ix_tenants_seed", "tenants", ["subscription_id", "resource_group"], unique=True
    )

    op.create_table(
        "logical_models",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("format", sa.String(100), nullable=False),
        sa.Column("version", sa.String(100), nullable=False),
        sa.Column("allowed_regions", postgresql.JSONB(), nullable=True),
        sa.Column("decommissioned_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_logical_models_name", "logical_models", ["name"], unique=True)

    op.create_table(
        "physical_deployments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("backend_id", sa.String(255), nullable=False),
        sa.Column("deployment_name", sa.String(255), nullable=False),
        sa.Column("region", sa.String(100), nullable=False),
        sa.Column("capacity_units", sa.Integer(), nullable=False),
        sa.Column("endpoint_url", sa.String(2048), nullable=False),
        sa.Column("auth_scope", sa.String(512), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_physical_deployments_backend_id",
        "physical_deployments",
        ["backend_id"],
        unique=True,
    )

    op.create_table(
        "routing_rules",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "logical_model_id",
            sa.Uuid(),
            sa.ForeignKey("logical_models.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("model_format", sa.String(100), nullable=True),
        sa.Column(
            "physical_deployment_id",
            sa.Uuid(),
            sa.ForeignKey("physical_deployments.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("policy", postgresql.JSONB(), nullable=False),
        sa.Column("policy_hash", sa.String(64), nullable=False),
        sa.Column("max_retries", sa.Integer(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_routing_rules_logical_model_id", "routing_rules", ["logical_model_id"]
    )
    op.create_index(
        "ix_routing_rules_physical_deployment_id",
        "routing_rules",
        ["physical_deployment_id"],
    )
    op.create_index(
        "uq_routing_rules_active_model",
        "routing_rules",
        ["logical_model_id"],
        unique=True,
        postgresql_where=sa.text("superseded_at IS NULL"),
    )
    op.create_index(
        "uq_routing_rules_active_default",
        "routing_rules",
        ["model_format"],
        unique=True,
        postgresql_where=sa.text("superseded_at IS NULL"),
    )

    op.create_table(
        "connections",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "tenant_id",
            sa.Uuid(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("gateway_target", sa.String(2048), nullable=False),
        sa.Column("key_hash", sa.String(64), nullable=False),
        sa.Column("key_prefix", sa.String(20), nullable=False),
        sa.Column("key_version", sa.Integer(), nullable=False),
        sa.Column("previous_key_hash", sa.String(64), nullable=True),
        sa.Column(
            "previous_key_valid_until", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("rotated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("model_allow_list", postgresql.JSONB(), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_connections_tenant_id", "connections", ["tenant_id"])
    op.create_index("ix_connections_key_hash", "connections", ["key_hash"], unique=True)
    op.create_index(
        "ix_connections_previous_key_hash", "connections", ["previous_key_hash"]
    )
    op.create_index(
        "ix_connections_tenant_status", "connections", ["tenant_id", "is_revoked"]
    )

    op.create_table(
        "access_grants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("principal_id", sa.String(255), nullable=False),
        sa.Column("principal_type", sa.String(50), nullable=False),
        sa.Column("resource_scope", sa.String(1024), nullable=False),
        sa.Column("capability", sa.String(100), nullable=False),
        sa.Column("granted_by", sa.String(255), nullable=False),
        sa.Column("granted_by_type", sa.String(50), nullable=False),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.String(255), nullable=True),
    )
    op.create_index("ix_access_grants_principal_id", "access_grants", ["principal_id"])
    op.create_index(
        "ix_access_grants_lookup",
        "access_grants",
        ["principal_id", "capability", "resource_scope"],
    )


def downgrade() -> None:
    op.drop_table("access_grants")
    op.drop_table("connections")
    op.drop_table("routing_rules")
    op.drop_table("physical_deployments")
    op.drop_table("logical_models")
    op.drop_table("tenants")
