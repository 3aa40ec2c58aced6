"""ORM model registry. Import all models so Alembic autogenerate discovers them."""

from rabbitmq_admin.models.audit import Audit, AuditOperationStatus, AuditOperationType, AuditResourceType
from rabbitmq_admin.models.cluster_connection import ClusterConnection, user_cluster_assignments
from rabbitmq_admin.models.user import User

__all__ = [
    "Audit",
    "AuditOperationStatus",
    "AuditOperationType",
    "AuditResourceType",
    "ClusterConnection",
    "User",
    "user_cluster_assignments",
]
