"""Audit API endpoints (administrators only).

GET /audits, GET /audits/config. Audit records are read-only: every other
method under /audits answers 404.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rabbitmq_admin.core.dependencies import (
    get_async_session,
    get_audit_recorder,
    get_retention_sweeper,
    require_role,
)
from rabbitmq_admin.models.user import User
from rabbitmq_admin.schemas.audit import (
    AuditConfigurationResponse,
    AuditPageResponse,
    AuditRecorderConfigResponse,
    AuditRecorderStatusResponse,
    AuditRecordResponse,
    AuditRetentionConfigResponse,
    AuditRetentionStatusResponse,
)
from rabbitmq_admin.services.audit_recorder import AuditRecorder
from rabbitmq_admin.services.audit_retention_service import AuditRetentionSweeper
from rabbitmq_admin.services.audit_service import (
    DEFAULT_PAGE_SIZE,
    AuditDisabledError,
    parse_audit_filters,
    parse_pagination,
    query_audit_records,
)

audits_router = APIRouter(prefix="/audits", tags=["audits"])


@audits_router.get("", response_model=AuditPageResponse)
async def list_audits(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
    _admin: Annotated[User, Depends(require_role("admin"))],
    username: str | None = None,
    cluster_name: Annotated[str | None, Query(alias="clusterName")] = None,
    operation_type: Annotated[str | None, Query(alias="operationType")] = None,
    resource_name: Annotated[str | None, Query(alias="resourceName")] = None,
    resource_type: Annotated[list[str] | None, Query(alias="resourceType")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    start_time: Annotated[datetime | None, Query(alias="startTime")] = None,
    end_time: Annotated[datetime | None, Query(alias="endTime")] = None,
    page: int = 0,
    page_size: Annotated[int, Query(alias="pageSize")] = DEFAULT_PAGE_SIZE,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_direction: Annotated[str | None, Query(alias="sortDirection")] = None,
) -> AuditPageResponse:
    """Query write-operation audit records with filters, sorting and pagination."""
    if not recorder.enabled:
        msg = "Write operation auditing is disabled"
        raise AuditDisabledError(msg)

    filters = parse_audit_filters(
        username=username,
        cluster_name=cluster_name,
        operation_type=operation_type,
        resource_name=resource_name,
        resource_types=resource_type,
        status=status_filter,
        start_time=start_time,
        end_time=end_time,
    )
    pagination = parse_pagination(page=page, page_size=page_size, sort_by=sort_by, sort_direction=sort_direction)
    result = await query_audit_records(session, filters, pagination)

    return AuditPageResponse(
        items=[AuditRecordResponse.model_validate(audit) for audit in result.items],
        page=result.page,
        page_size=result.page_size,
        total_items=result.total,
        total_pages=result.total_pages,
    )


@audits_router.get("/config", response_model=AuditConfigurationResponse)
async def get_audit_config(
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
    sweeper: Annotated[AuditRetentionSweeper, Depends(get_retention_sweeper)],
    _admin: Annotated[User, Depends(require_role("admin"))],
) -> AuditConfigurationResponse:
    """Return the effective audit configuration, recorder counters and last sweep."""
    return AuditConfigurationResponse(
        write_operations=AuditRecorderConfigResponse(**recorder.configuration()),
        retention=AuditRetentionConfigResponse(**sweeper.configuration()),
        recorder_status=AuditRecorderStatusResponse(**recorder.status()),
        last_sweep=AuditRetentionStatusResponse(**sweeper.status()),
    )


@audits_router.api_route("", methods=["POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
@audits_router.api_route("/{audit_id}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def audit_record_not_found(audit_id: str | None = None) -> None:
    """Audit records cannot be fetched individually, modified or deleted."""
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
