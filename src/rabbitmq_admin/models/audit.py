"""Audit model: immutable record of one write operation against a cluster.

Rows are inserted by the audit recorder and removed only by the retention
sweeper. No code path updates an existing row.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from rabbitmq_admin.models.base import Base, UUIDMixin

ERROR_MESSAGE_MAX_LENGTH = 1000
RESOURCE_NAME_MAX_LENGTH = 500
USER_AGENT_MAX_LENGTH = 255


class AuditOperationType(enum.StrEnum):
    """Kind of write operation performed against RabbitMQ."""

    CREATE_EXCHANGE = "CREATE_EXCHANGE"
    DELETE_EXCHANGE = "DELETE_EXCHANGE"
    CREATE_QUEUE = "CREATE_QUEUE"
    DELETE_QUEUE = "DELETE_QUEUE"
    PURGE_QUEUE = "PURGE_QUEUE"
    CREATE_BINDING_EXCHANGE = "CREATE_BINDING_EXCHANGE"
    CREATE_BINDING_QUEUE = "CREATE_BINDING_QUEUE"
    DELETE_BINDING = "DELETE_BINDING"
    PUBLISH_MESSAGE_EXCHANGE = "PUBLISH_MESSAGE_EXCHANGE"
    PUBLISH_MESSAGE_QUEUE = "PUBLISH_MESSAGE_QUEUE"
    MOVE_MESSAGES_QUEUE = "MOVE_MESSAGES_QUEUE"


class AuditOperationStatus(enum.StrEnum):
    """Outcome of an audited operation."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    PARTIAL = "PARTIAL"


class AuditResourceType(enum.StrEnum):
    """Resource kinds an audit record can refer to."""

    EXCHANGE = "exchange"
    QUEUE = "queue"
    BINDING = "binding"
    MESSAGE = "message"


def _in_list(values: type[enum.StrEnum]) -> str:
    return ", ".join(f"'{v}'" for v in values)


class Audit(Base, UUIDMixin):
    """A single audited write operation.

    Attributes:
        user_id: FK to the acting user (deletion protected).
        username: Username snapshot at write time.
        cluster_id: FK to the target cluster (deletion protected).
        cluster_name: Cluster name snapshot at write time.
        operation_type: One of ``AuditOperationType``.
        resource_type: One of ``AuditResourceType``.
        resource_name: Target name, ``"source -> destination"`` for bindings.
        resource_details: Operation-specific JSON payload.
        status: One of ``AuditOperationStatus``.
        error_message: Present iff status is not SUCCESS.
        timestamp: When the RabbitMQ call was made.
        created_at: When the row was persisted.
        client_ip: Originating client address, best effort.
        user_agent: Originating User-Agent header, best effort.
    """

    __tablename__ = "audits"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    cluster_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("cluster_connections.id", ondelete="RESTRICT"),
        nullable=False,
    )
    cluster_name: Mapped[str] = mapped_column(String(100), nullable=False)
    operation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_name: Mapped[str] = mapped_column(String(RESOURCE_NAME_MAX_LENGTH), nullable=False)
    resource_details: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    error_message: Mapped[str | None] = mapped_column(String(ERROR_MESSAGE_MAX_LENGTH), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    client_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(USER_AGENT_MAX_LENGTH), nullable=True)

    __table_args__ = (
        CheckConstraint(f"operation_type IN ({_in_list(AuditOperationType)})", name="ck_audits_operation_type"),
        CheckConstraint(f"status IN ({_in_list(AuditOperationStatus)})", name="ck_audits_status"),
        Index("ix_audits_timestamp", "timestamp"),
        Index("ix_audits_user_id", "user_id"),
        Index("ix_audits_username", "username"),
        Index("ix_audits_cluster_id", "cluster_id"),
        Index("ix_audits_cluster_name", "cluster_name"),
        Index("ix_audits_operation_type", "operation_type"),
        Index("ix_audits_resource_type", "resource_type"),
        Index("ix_audits_status", "status"),
        Index("ix_audits_cluster_timestamp", "cluster_id", "timestamp"),
    )
