"""Initial migration: users, cluster connections, assignments and audits.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

OPERATION_TYPES = (
    "CREATE_EXCHANGE",
    "DELETE_EXCHANGE",
    "CREATE_QUEUE",
    "DELETE_QUEUE",
    "PURGE_QUEUE",
    "CREATE_BINDING_EXCHANGE",
    "CREATE_BINDING_QUEUE",
    "DELETE_BINDING",
    "PUBLISH_MESSAGE_EXCHANGE",
    "PUBLISH_MESSAGE_QUEUE",
    "MOVE_MESSAGES_QUEUE",
)
STATUSES = ("SUCCESS", "FAILURE", "PARTIAL")


def _in_list(values: Sequence[str]) -> str:
    return ", ".join(f"'{v}'" for v in values)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(100), unique=True, nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "cluster_connections",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("api_url", sa.String(500), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_cluster_connections_name", "cluster_connections", ["name"], unique=True)

    op.create_table(
        "user_cluster_assignments",
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "cluster_id",
            UUID(as_uuid=True),
            sa.ForeignKey("cluster_connections.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "audits",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column(
            "cluster_id",
            UUID(as_uuid=True),
            sa.ForeignKey("cluster_connections.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("cluster_name", sa.String(100), nullable=False),
        sa.Column("operation_type", sa.String(50), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_name", sa.String(500), nullable=False),
        sa.Column("resource_details", JSONB, nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error_message", sa.String(1000), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("client_ip", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
        sa.CheckConstraint(f"operation_type IN ({_in_list(OPERATION_TYPES)})", name="ck_audits_operation_type"),
        sa.CheckConstraint(f"status IN ({_in_list(STATUSES)})", name="ck_audits_status"),
    )
    op.create_index("ix_audits_timestamp", "audits", ["timestamp"])
    op.create_index("ix_audits_user_id", "audits", ["user_id"])
    op.create_index("ix_audits_username", "audits", ["username"])
    op.create_index("ix_audits_cluster_id", "audits", ["cluster_id"])
    op.create_index("ix_audits_cluster_name", "audits", ["cluster_name"])
    op.create_index("ix_audits_operation_type", "audits", ["operation_type"])
    op.create_index("ix_audits_resource_type", "audits", ["resource_type"])
    op.create_index("ix_audits_status", "audits", ["status"])
    op.create_index("ix_audits_cluster_timestamp", "audits", ["cluster_id", "timestamp"])


def downgrade() -> None:
    op.drop_table("audits")
    op.drop_table("user_cluster_assignments")
    op.drop_table("cluster_connections")
    op.drop_table("users")
