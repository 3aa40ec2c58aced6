"""Audit API schemas.

Responses are serialized in camelCase (``pageSize``, ``totalItems``,
``operationType``...) to match the query parameter names of ``GET /api/audits``.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AuditRecordResponse(CamelModel):
    """A single audited write operation."""

    id: UUID
    user_id: UUID
    username: str
    cluster_id: UUID
    cluster_name: str
    operation_type: str
    resource_type: str
    resource_name: str
    resource_details: dict[str, Any] | None = None
    status: str
    error_message: str | None = None
    timestamp: datetime
    created_at: datetime
    client_ip: str | None = None
    user_agent: str | None = None


class AuditPageResponse(CamelModel):
    """One page of audit records with pagination metadata."""

    items: list[AuditRecordResponse]
    page: int = Field(description="Zero-based page index")
    page_size: int
    total_items: int = Field(description="Number of records matching the filters")
    total_pages: int


class AuditRecorderConfigResponse(CamelModel):
    enabled: bool
    retention_days: int
    batch_size: int
    async_processing: bool
    queue_capacity: int


class AuditRetentionConfigResponse(CamelModel):
    enabled: bool
    days: int
    schedule: str
    batch_size: int


class AuditRecorderStatusResponse(CamelModel):
    running: bool
    pending: int = Field(description="Records queued for the background worker")
    persisted: int
    dropped: int
    failed: int


class AuditRetentionStatusResponse(CamelModel):
    last_run_at: datetime | None = None
    last_deleted: int | None = None


class AuditConfigurationResponse(CamelModel):
    """Effective write-audit and retention configuration, with runtime counters."""

    write_operations: AuditRecorderConfigResponse
    retention: AuditRetentionConfigResponse
    recorder_status: AuditRecorderStatusResponse
    last_sweep: AuditRetentionStatusResponse
