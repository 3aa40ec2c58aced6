"""Tests for the audit query service: filter parsing, pagination and queries."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from rabbitmq_admin.models.audit import Audit, AuditOperationStatus, AuditOperationType, AuditResourceType
from rabbitmq_admin.services.audit_service import (
    AuditFilters,
    AuditFilterValidationError,
    AuditPage,
    AuditPagination,
    parse_audit_filters,
    parse_pagination,
    query_audit_records,
)

BASE_TIME = datetime(2026, 5, 1, 12, 0, tzinfo=UTC)


def _audit(**overrides) -> Audit:
    defaults = {
        "id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "username": "alice",
        "cluster_id": uuid.uuid4(),
        "cluster_name": "prod",
        "operation_type": AuditOperationType.CREATE_EXCHANGE,
        "resource_type": AuditResourceType.EXCHANGE,
        "resource_name": "orders",
        "resource_details": {"vhost": "/"},
        "status": AuditOperationStatus.SUCCESS,
        "error_message": None,
        "timestamp": BASE_TIME,
    }
    defaults.update(overrides)
    return Audit(**defaults)


@pytest.fixture
async def seeded(async_session: AsyncSession) -> list[Audit]:
    """Five records spread over users, clusters, resources and time."""
    records = [
        _audit(username="alice", resource_name="orders", timestamp=BASE_TIME),
        _audit(
            username="Alice.Admin",
            operation_type=AuditOperationType.DELETE_QUEUE,
            resource_type=AuditResourceType.QUEUE,
            resource_name="billing_events",
            status=AuditOperationStatus.FAILURE,
            error_message="Queue not found (HTTP 404)",
            timestamp=BASE_TIME + timedelta(hours=1),
        ),
        _audit(
            username="bob",
            cluster_name="staging",
            operation_type=AuditOperationType.CREATE_BINDING_QUEUE,
            resource_type=AuditResourceType.BINDING,
            resource_name="orders -> billing_events",
            timestamp=BASE_TIME + timedelta(hours=2),
        ),
        _audit(
            username="bob",
            operation_type=AuditOperationType.PUBLISH_MESSAGE_QUEUE,
            resource_type=AuditResourceType.MESSAGE,
            resource_name="billing%events",
            timestamp=BASE_TIME + timedelta(hours=3),
        ),
        _audit(username="carol", resource_name="audit_log", timestamp=BASE_TIME + timedelta(days=2)),
    ]
    async_session.add_all(records)
    await async_session.commit()
    return records


class TestParseAuditFilters:
    """Tests for parse_audit_filters."""

    def test_empty_filters(self) -> None:
        assert parse_audit_filters() == AuditFilters()

    def test_blank_strings_are_absent(self) -> None:
        filters = parse_audit_filters(username="  ", cluster_name="", operation_type=" ")
        assert filters.username is None
        assert filters.cluster_name is None
        assert filters.operation_type is None

    def test_enum_values_case_insensitive(self) -> None:
        filters = parse_audit_filters(operation_type="create_exchange", status="failure")
        assert filters.operation_type == AuditOperationType.CREATE_EXCHANGE
        assert filters.status == AuditOperationStatus.FAILURE

    def test_resource_types_repeated_and_comma_separated(self) -> None:
        filters = parse_audit_filters(resource_types=["Exchange,queue", "binding", "queue"])
        assert filters.resource_types == [
            AuditResourceType.EXCHANGE,
            AuditResourceType.QUEUE,
            AuditResourceType.BINDING,
        ]

    @pytest.mark.parametrize(
        ("kwargs", "field"),
        [
            ({"operation_type": "DROP_EVERYTHING"}, "operationType"),
            ({"status": "MAYBE"}, "status"),
            ({"resource_types": ["exchange,shovel"]}, "resourceType"),
        ],
    )
    def test_unknown_enum_value_names_field(self, kwargs: dict, field: str) -> None:
        with pytest.raises(AuditFilterValidationError) as exc_info:
            parse_audit_filters(**kwargs)
        assert exc_info.value.field == field
        assert "Allowed values" in exc_info.value.message

    def test_inverted_date_range(self) -> None:
        with pytest.raises(AuditFilterValidationError) as exc_info:
            parse_audit_filters(start_time=BASE_TIME, end_time=BASE_TIME - timedelta(seconds=1))
        assert exc_info.value.field == "dateRange"

    def test_equal_start_and_end_allowed(self) -> None:
        filters = parse_audit_filters(start_time=BASE_TIME, end_time=BASE_TIME)
        assert filters.start_time == filters.end_time

    def test_naive_datetimes_taken_as_utc(self) -> None:
        filters = parse_audit_filters(start_time=datetime(2026, 5, 1, 12, 0), end_time=BASE_TIME)
        assert filters.start_time == BASE_TIME


class TestParsePagination:
    """Tests for parse_pagination."""

    def test_defaults(self) -> None:
        assert parse_pagination() == AuditPagination(page=0, page_size=50, sort_by="timestamp", sort_direction="desc")

    @pytest.mark.parametrize("page_size", [1, 200])
    def test_page_size_bounds_accepted(self, page_size: int) -> None:
        assert parse_pagination(page_size=page_size).page_size == page_size

    @pytest.mark.parametrize("page_size", [0, 201, -5])
    def test_page_size_out_of_bounds_rejected(self, page_size: int) -> None:
        with pytest.raises(AuditFilterValidationError) as exc_info:
            parse_pagination(page_size=page_size)
        assert exc_info.value.field == "pageSize"

    def test_negative_page_rejected(self) -> None:
        with pytest.raises(AuditFilterValidationError) as exc_info:
            parse_pagination(page=-1)
        assert exc_info.value.field == "page"

    def test_snake_case_sort_key_accepted(self) -> None:
        assert parse_pagination(sort_by="cluster_name").sort_by == "clusterName"

    def test_unknown_sort_key(self) -> None:
        with pytest.raises(AuditFilterValidationError) as exc_info:
            parse_pagination(sort_by="password")
        assert exc_info.value.field == "sortBy"

    def test_sort_direction(self) -> None:
        assert parse_pagination(sort_direction="ASC").sort_direction == "asc"
        with pytest.raises(AuditFilterValidationError) as exc_info:
            parse_pagination(sort_direction="sideways")
        assert exc_info.value.field == "sortDirection"


class TestAuditPage:
    """Tests for AuditPage.total_pages."""

    @pytest.mark.parametrize(("total", "page_size", "expected"), [(0, 50, 0), (1, 50, 1), (50, 50, 1), (51, 50, 2)])
    def test_total_pages(self, total: int, page_size: int, expected: int) -> None:
        assert AuditPage(items=[], total=total, page=0, page_size=page_size).total_pages == expected


class TestQueryAuditRecords:
    """Tests for query_audit_records against an in-memory database."""

    @pytest.mark.asyncio
    async def test_no_filters_returns_all_newest_first(self, async_session, seeded) -> None:
        page = await query_audit_records(async_session)
        assert page.total == 5
        assert [a.username for a in page.items] == ["carol", "bob", "bob", "Alice.Admin", "alice"]

    @pytest.mark.asyncio
    async def test_username_substring_case_insensitive(self, async_session, seeded) -> None:
        page = await query_audit_records(async_session, parse_audit_filters(username="ALICE"))
        assert page.total == 2
        assert {a.username for a in page.items} == {"alice", "Alice.Admin"}

    @pytest.mark.asyncio
    async def test_cluster_name_exact(self, async_session, seeded) -> None:
        page = await query_audit_records(async_session, parse_audit_filters(cluster_name="staging"))
        assert page.total == 1
        assert page.items[0].resource_name == "orders -> billing_events"
        page = await query_audit_records(async_session, parse_audit_filters(cluster_name="stag"))
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_resource_name_substring(self, async_session, seeded) -> None:
        page = await query_audit_records(async_session, parse_audit_filters(resource_name="Billing"))
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, async_session, seeded) -> None:
        page = await query_audit_records(async_session, parse_audit_filters(resource_name="%"))
        assert [a.resource_name for a in page.items] == ["billing%events"]
        page = await query_audit_records(async_session, parse_audit_filters(resource_name="g_e"))
        assert sorted(a.resource_name for a in page.items) == ["billing_events", "orders -> billing_events"]

    @pytest.mark.asyncio
    async def test_operation_type_and_status(self, async_session, seeded) -> None:
        filters = parse_audit_filters(operation_type="DELETE_QUEUE", status="FAILURE")
        page = await query_audit_records(async_session, filters)
        assert page.total == 1
        assert page.items[0].error_message == "Queue not found (HTTP 404)"

    @pytest.mark.asyncio
    async def test_resource_types_any_of(self, async_session, seeded) -> None:
        page = await query_audit_records(async_session, parse_audit_filters(resource_types=["queue,message"]))
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_time_range_inclusive(self, async_session, seeded) -> None:
        filters = parse_audit_filters(start_time=BASE_TIME, end_time=BASE_TIME + timedelta(hours=2))
        page = await query_audit_records(async_session, filters)
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_pagination_and_total(self, async_session, seeded) -> None:
        first = await query_audit_records(async_session, pagination=parse_pagination(page=0, page_size=2))
        last = await query_audit_records(async_session, pagination=parse_pagination(page=2, page_size=2))
        beyond = await query_audit_records(async_session, pagination=parse_pagination(page=5, page_size=2))
        assert first.total == last.total == beyond.total == 5
        assert len(first.items) == 2
        assert len(last.items) == 1
        assert beyond.items == []
        assert first.total_pages == 3

    @pytest.mark.asyncio
    async def test_sort_ascending_by_username(self, async_session, seeded) -> None:
        pagination = parse_pagination(sort_by="username", sort_direction="asc")
        page = await query_audit_records(async_session, pagination=pagination)
        assert [a.username for a in page.items] == ["Alice.Admin", "alice", "bob", "bob", "carol"]

    @pytest.mark.asyncio
    async def test_equal_sort_keys_paginate_stably(self, async_session) -> None:
        async_session.add_all([_audit(resource_name=f"q{i}") for i in range(6)])
        await async_session.commit()

        seen: list[uuid.UUID] = []
        for page_number in range(3):
            pagination = parse_pagination(page=page_number, page_size=2)
            page = await query_audit_records(async_session, pagination=pagination)
            seen.extend(a.id for a in page.items)

        assert len(seen) == len(set(seen)) == 6
