"""ClusterConnection model and the user/cluster assignment table.

A cluster connection stores the Management API endpoint and credentials of
one RabbitMQ cluster. Non-administrators may only operate on clusters they
are assigned to through ``user_cluster_assignments``.
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from rabbitmq_admin.models.base import Base, UUIDMixin

user_cluster_assignments = Table(
    "user_cluster_assignments",
    Base.metadata,
    Column("user_id", UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "cluster_id",
        UUID(as_uuid=True),
        ForeignKey("cluster_connections.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class ClusterConnection(Base, UUIDMixin):
    """Connection details for one RabbitMQ cluster's Management API.

    Attributes:
        name: Unique display name, snapshotted into audit records.
        api_url: Base URL of the Management API (e.g. ``http://rabbit:15672``).
        username: Management API user.
        password: Management API password.
        description: Optional free-text description.
        active: Inactive clusters reject write operations.
    """

    __tablename__ = "cluster_connections"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    api_url: Mapped[str] = mapped_column(String(500), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
