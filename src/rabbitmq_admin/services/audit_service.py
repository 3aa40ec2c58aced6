"""Audit query service: filter, sort and paginate write-operation audit records.

Raw request parameters are parsed into ``AuditFilters`` and
``AuditPagination``; any invalid value raises ``AuditFilterValidationError``
naming the offending field. Authorization is enforced by the API layer.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from rabbitmq_admin.models.audit import Audit, AuditOperationStatus, AuditOperationType, AuditResourceType

DEFAULT_PAGE_SIZE = 50
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 200

SORTABLE_COLUMNS = {
    "timestamp": Audit.timestamp,
    "username": Audit.username,
    "clusterName": Audit.cluster_name,
    "operationType": Audit.operation_type,
    "resourceType": Audit.resource_type,
    "resourceName": Audit.resource_name,
    "status": Audit.status,
    "createdAt": Audit.created_at,
    "clientIp": Audit.client_ip,
}
_SNAKE_CASE_SORT_KEYS = {
    "cluster_name": "clusterName",
    "operation_type": "operationType",
    "resource_type": "resourceType",
    "resource_name": "resourceName",
    "created_at": "createdAt",
    "client_ip": "clientIp",
}


class AuditFilterValidationError(ValueError):
    """A query parameter failed validation.

    Attributes:
        field: Name of the offending request parameter (``dateRange`` for an
            inverted time range).
        message: Human readable explanation.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class AuditDisabledError(Exception):
    """Write-operation auditing is switched off."""


@dataclass
class AuditFilters:
    username: str | None = None
    cluster_name: str | None = None
    operation_type: AuditOperationType | None = None
    resource_name: str | None = None
    resource_types: list[AuditResourceType] = field(default_factory=list)
    status: AuditOperationStatus | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


@dataclass
class AuditPagination:
    page: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    sort_by: str = "timestamp"
    sort_direction: str = "desc"


@dataclass
class AuditPage:
    items: list[Audit]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _parse_choice(field_name: str, value: str, choices: Iterable[str]) -> str:
    allowed = list(choices)
    if value not in allowed:
        msg = f"Invalid value '{value}'. Allowed values: {', '.join(allowed)}"
        raise AuditFilterValidationError(field_name, msg)
    return value


def parse_audit_filters(
    *,
    username: str | None = None,
    cluster_name: str | None = None,
    operation_type: str | None = None,
    resource_name: str | None = None,
    resource_types: Iterable[str] | None = None,
    status: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
) -> AuditFilters:
    """Validate raw filter parameters.

    ``resource_types`` entries may themselves be comma-separated.
    Blank strings are treated as absent. Naive datetimes are taken as UTC.

    Raises:
        AuditFilterValidationError: On an unknown enum value or when
            ``start_time`` is after ``end_time``.
    """
    filters = AuditFilters(
        username=_blank_to_none(username),
        cluster_name=_blank_to_none(cluster_name),
        resource_name=_blank_to_none(resource_name),
        start_time=_as_utc(start_time),
        end_time=_as_utc(end_time),
    )

    if (value := _blank_to_none(operation_type)) is not None:
        filters.operation_type = AuditOperationType(
            _parse_choice("operationType", value.upper(), AuditOperationType)
        )
    if (value := _blank_to_none(status)) is not None:
        filters.status = AuditOperationStatus(_parse_choice("status", value.upper(), AuditOperationStatus))

    for raw in resource_types or []:
        for part in raw.split(","):
            if (value := _blank_to_none(part)) is None:
                continue
            resource_type = AuditResourceType(_parse_choice("resourceType", value.lower(), AuditResourceType))
            if resource_type not in filters.resource_types:
                filters.resource_types.append(resource_type)

    if filters.start_time is not None and filters.end_time is not None and filters.start_time > filters.end_time:
        msg = "startTime must be before or equal to endTime"
        raise AuditFilterValidationError("dateRange", msg)
    return filters


def parse_pagination(
    *,
    page: int = 0,
    page_size: int = DEFAULT_PAGE_SIZE,
    sort_by: str | None = None,
    sort_direction: str | None = None,
) -> AuditPagination:
    """Validate paging and sorting parameters.

    Page sizes outside 1..200 are rejected, never clamped.

    Raises:
        AuditFilterValidationError: Naming ``page``, ``pageSize``, ``sortBy``
            or ``sortDirection``.
    """
    if page < 0:
        raise AuditFilterValidationError("page", f"Page must be at least 0 (got {page})")
    if not MIN_PAGE_SIZE <= page_size <= MAX_PAGE_SIZE:
        msg = f"Page size must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE} (got {page_size})"
        raise AuditFilterValidationError("pageSize", msg)

    sort_key = _blank_to_none(sort_by) or "timestamp"
    sort_key = _parse_choice("sortBy", _SNAKE_CASE_SORT_KEYS.get(sort_key, sort_key), SORTABLE_COLUMNS)
    direction = _parse_choice("sortDirection", (_blank_to_none(sort_direction) or "desc").lower(), ("asc", "desc"))
    return AuditPagination(page=page, page_size=page_size, sort_by=sort_key, sort_direction=direction)


def _contains_ci(column: InstrumentedAttribute[str], value: str) -> ColumnElement[bool]:
    escaped = value.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return func.lower(column).like(f"%{escaped}%", escape="\\")


def _apply_filters(query: Select, filters: AuditFilters) -> Select:
    if filters.username is not None:
        query = query.where(_contains_ci(Audit.username, filters.username))
    if filters.cluster_name is not None:
        query = query.where(Audit.cluster_name == filters.cluster_name)
    if filters.operation_type is not None:
        query = query.where(Audit.operation_type == filters.operation_type)
    if filters.resource_name is not None:
        query = query.where(_contains_ci(Audit.resource_name, filters.resource_name))
    if filters.resource_types:
        query = query.where(Audit.resource_type.in_([str(t) for t in filters.resource_types]))
    if filters.status is not None:
        query = query.where(Audit.status == filters.status)
    if filters.start_time is not None:
        query = query.where(Audit.timestamp >= filters.start_time)
    if filters.end_time is not None:
        query = query.where(Audit.timestamp <= filters.end_time)
    return query


async def query_audit_records(
    session: AsyncSession,
    filters: AuditFilters | None = None,
    pagination: AuditPagination | None = None,
) -> AuditPage:
    """Return one page of audit records matching ``filters``.

    Args:
        session: Database session.
        filters: Validated filters; ``None`` matches everything.
        pagination: Validated paging and sorting; defaults to the first page
            of 50 records, newest first.

    Returns:
        The page of records and the total number of matching records.
    """
    filters = filters or AuditFilters()
    pagination = pagination or AuditPagination()

    count_query = _apply_filters(select(func.count(Audit.id)), filters)
    total = (await session.execute(count_query)).scalar_one()

    column = SORTABLE_COLUMNS[pagination.sort_by]
    if pagination.sort_direction == "asc":
        order = (column.asc(), Audit.id.asc())
    else:
        order = (column.desc(), Audit.id.desc())
    query = (
        _apply_filters(select(Audit), filters)
        .order_by(*order)
        .offset(pagination.page * pagination.page_size)
        .limit(pagination.page_size)
    )
    result = await session.execute(query)
    items = list(result.scalars().all())

    logger.debug(
        f"Queried {len(items)} audit records (total={total}, page={pagination.page}, "
        f"sort={pagination.sort_by} {pagination.sort_direction})"
    )
    return AuditPage(items=items, total=total, page=pagination.page, page_size=pagination.page_size)
