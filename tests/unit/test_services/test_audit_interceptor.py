"""Tests for the write-operation interceptor."""

import asyncio
import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from rabbitmq_admin.core.request_context import reset_request_context, set_request_context
from rabbitmq_admin.lib.rabbitmq import RabbitMQApiError
from rabbitmq_admin.models.audit import AuditOperationStatus, AuditOperationType, AuditResourceType
from rabbitmq_admin.models.cluster_connection import ClusterConnection
from rabbitmq_admin.models.user import User
from rabbitmq_admin.services.audit_interceptor import (
    PartialResult,
    WriteOperation,
    WriteOperationAuditor,
    build_audit,
    describe_error,
)


def _recorder(enabled: bool = True) -> MagicMock:
    recorder = MagicMock()
    recorder.enabled = enabled
    recorder.record = AsyncMock()
    return recorder


def _actor() -> User:
    return User(id=uuid.uuid4(), username="alice", email="alice@test.com", hashed_password="x", role="admin")


def _cluster() -> ClusterConnection:
    return ClusterConnection(id=uuid.uuid4(), name="prod", api_url="http://rabbit:15672", username="g", password="g")


def _operation(**overrides) -> WriteOperation:
    defaults = {
        "operation_type": AuditOperationType.CREATE_EXCHANGE,
        "resource_type": AuditResourceType.EXCHANGE,
        "resource_name": "orders",
        "details": {"vhost": "/", "exchangeType": "topic"},
        "description": "Create a new exchange",
    }
    defaults.update(overrides)
    return WriteOperation(**defaults)


def _recorded(recorder: MagicMock):
    recorder.record.assert_awaited_once()
    return recorder.record.await_args.args[0]


class TestWriteOperationAuditor:
    """Tests for WriteOperationAuditor.run."""

    @pytest.mark.asyncio
    async def test_success_returns_value_and_records_success(self) -> None:
        recorder = _recorder()
        auditor = WriteOperationAuditor(recorder)
        actor, cluster = _actor(), _cluster()

        result = await auditor.run(_operation(), actor=actor, cluster=cluster, call=AsyncMock(return_value="ok"))

        assert result == "ok"
        audit = _recorded(recorder)
        assert audit.status == AuditOperationStatus.SUCCESS
        assert audit.error_message is None
        assert audit.operation_type == AuditOperationType.CREATE_EXCHANGE
        assert audit.resource_type == "exchange"
        assert audit.resource_name == "orders"
        assert audit.user_id == actor.id
        assert audit.username == "alice"
        assert audit.cluster_id == cluster.id
        assert audit.cluster_name == "prod"
        assert audit.id is not None
        assert audit.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_failure_reraises_original_exception(self) -> None:
        recorder = _recorder()
        auditor = WriteOperationAuditor(recorder)
        error = RabbitMQApiError("Queue not found (HTTP 404)", status_code=404)

        with pytest.raises(RabbitMQApiError) as exc_info:
            await auditor.run(_operation(), actor=_actor(), cluster=_cluster(), call=AsyncMock(side_effect=error))

        assert exc_info.value is error
        audit = _recorded(recorder)
        assert audit.status == AuditOperationStatus.FAILURE
        assert "Queue not found" in audit.error_message

    @pytest.mark.asyncio
    async def test_failure_with_empty_message_uses_class_name(self) -> None:
        recorder = _recorder()
        auditor = WriteOperationAuditor(recorder)

        with pytest.raises(KeyError):
            await auditor.run(_operation(), actor=_actor(), cluster=_cluster(), call=AsyncMock(side_effect=KeyError()))

        assert _recorded(recorder).error_message == "KeyError"

    @pytest.mark.asyncio
    async def test_cancellation_recorded_and_propagated(self) -> None:
        recorder = _recorder()
        auditor = WriteOperationAuditor(recorder)

        with pytest.raises(asyncio.CancelledError):
            await auditor.run(
                _operation(),
                actor=_actor(),
                cluster=_cluster(),
                call=AsyncMock(side_effect=asyncio.CancelledError()),
            )

        audit = _recorded(recorder)
        assert audit.status == AuditOperationStatus.FAILURE
        assert audit.error_message == "Operation cancelled"

    @pytest.mark.asyncio
    async def test_partial_result_records_partial(self) -> None:
        recorder = _recorder()
        auditor = WriteOperationAuditor(recorder)
        partial = PartialResult(value=["q1"], error_message="q2 could not be moved")

        result = await auditor.run(_operation(), actor=_actor(), cluster=_cluster(), call=AsyncMock(return_value=partial))

        assert result is partial
        audit = _recorded(recorder)
        assert audit.status == AuditOperationStatus.PARTIAL
        assert audit.error_message == "q2 could not be moved"

    @pytest.mark.asyncio
    async def test_disabled_calls_through_without_recording(self) -> None:
        recorder = _recorder(enabled=False)
        auditor = WriteOperationAuditor(recorder)

        result = await auditor.run(_operation(), actor=_actor(), cluster=_cluster(), call=AsyncMock(return_value=1))

        assert result == 1
        recorder.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_recorder_failure_does_not_change_outcome(self) -> None:
        recorder = _recorder()
        recorder.record.side_effect = RuntimeError("database down")
        auditor = WriteOperationAuditor(recorder)

        result = await auditor.run(_operation(), actor=_actor(), cluster=_cluster(), call=AsyncMock(return_value="ok"))

        assert result == "ok"

    @pytest.mark.asyncio
    async def test_recorder_failure_does_not_mask_call_error(self) -> None:
        recorder = _recorder()
        recorder.record.side_effect = RuntimeError("database down")
        auditor = WriteOperationAuditor(recorder)

        with pytest.raises(ValueError, match="upstream"):
            await auditor.run(
                _operation(),
                actor=_actor(),
                cluster=_cluster(),
                call=AsyncMock(side_effect=ValueError("upstream")),
            )

    @pytest.mark.asyncio
    async def test_details_enriched_with_timing_and_description(self) -> None:
        recorder = _recorder()
        auditor = WriteOperationAuditor(recorder)

        await auditor.run(_operation(), actor=_actor(), cluster=_cluster(), call=AsyncMock())

        details = _recorded(recorder).resource_details
        assert details["vhost"] == "/"
        assert details["exchangeType"] == "topic"
        assert details["description"] == "Create a new exchange"
        assert isinstance(details["executionTimeMs"], int)

    @pytest.mark.asyncio
    async def test_captures_request_context(self) -> None:
        recorder = _recorder()
        auditor = WriteOperationAuditor(recorder)
        token = set_request_context("203.0.113.7", "Mozilla/5.0")
        try:
            await auditor.run(_operation(), actor=_actor(), cluster=_cluster(), call=AsyncMock())
        finally:
            reset_request_context(token)

        audit = _recorded(recorder)
        assert audit.client_ip == "203.0.113.7"
        assert audit.user_agent == "Mozilla/5.0"


class TestBuildAudit:
    """Tests for build_audit and describe_error."""

    def _build(self, status: AuditOperationStatus, error_message: str | None, **operation_overrides):
        return build_audit(
            _operation(**operation_overrides),
            user_id=uuid.uuid4(),
            username="alice",
            cluster_id=uuid.uuid4(),
            cluster_name="prod",
            status=status,
            error_message=error_message,
            timestamp=datetime.now(UTC),
            execution_time_ms=3,
        )

    def test_success_never_carries_error(self) -> None:
        assert self._build(AuditOperationStatus.SUCCESS, "ignored").error_message is None

    @pytest.mark.parametrize("message", [None, "", "   "])
    def test_failure_without_message_gets_fallback(self, message: str | None) -> None:
        assert self._build(AuditOperationStatus.FAILURE, message).error_message == "Operation failed"

    def test_error_message_truncated(self) -> None:
        audit = self._build(AuditOperationStatus.FAILURE, "x" * 1500)
        assert len(audit.error_message) == 1000

    def test_resource_name_truncated(self) -> None:
        audit = self._build(AuditOperationStatus.SUCCESS, None, resource_name="n" * 600)
        assert len(audit.resource_name) == 500

    def test_default_description_from_operation_type(self) -> None:
        audit = self._build(AuditOperationStatus.SUCCESS, None, description=None)
        assert audit.resource_details["description"] == "Create exchange"

    def test_describe_error_truncates(self) -> None:
        assert len(describe_error(RuntimeError("y" * 2000))) == 1000
