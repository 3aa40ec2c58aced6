"""Write-operation interceptor.

Every mutating call against a RabbitMQ cluster goes through
``WriteOperationAuditor.run``. The auditor invokes the call, classifies the
outcome and hands exactly one audit record to the recorder, whatever the
outcome. The caller always observes the call's own result or exception.
"""

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from loguru import logger

from rabbitmq_admin.core.request_context import get_request_context
from rabbitmq_admin.models.audit import (
    ERROR_MESSAGE_MAX_LENGTH,
    RESOURCE_NAME_MAX_LENGTH,
    USER_AGENT_MAX_LENGTH,
    Audit,
    AuditOperationStatus,
    AuditOperationType,
)
from rabbitmq_admin.models.cluster_connection import ClusterConnection
from rabbitmq_admin.models.user import User
from rabbitmq_admin.services.audit_recorder import AuditRecorder

T = TypeVar("T")

DEFAULT_FAILURE_MESSAGE = "Operation failed"
CANCELLED_MESSAGE = "Operation cancelled"


@dataclass
class WriteOperation:
    """Identity of one audited write operation.

    Attributes:
        operation_type: What is being done.
        resource_type: ``exchange``, ``queue``, ``binding`` or ``message``.
        resource_name: Name of the target, ``"source -> destination"`` for
            bindings and moves.
        details: Operation-specific payload stored as ``resource_details``.
        description: Human readable summary added to the details payload.
    """

    operation_type: AuditOperationType
    resource_type: str
    resource_name: str
    details: dict[str, Any] = field(default_factory=dict)
    description: str | None = None


@dataclass
class PartialResult(Generic[T]):
    """Return value of a call that completed with a degraded outcome.

    Returned unchanged to the caller; the audit record gets status PARTIAL.
    """

    value: T
    error_message: str


def describe_error(exc: BaseException) -> str:
    """Bounded error text for an exception, falling back to its class name."""
    message = str(exc).strip() or type(exc).__name__
    return message[:ERROR_MESSAGE_MAX_LENGTH]


def build_audit(
    operation: WriteOperation,
    *,
    user_id: uuid.UUID,
    username: str,
    cluster_id: uuid.UUID,
    cluster_name: str,
    status: AuditOperationStatus,
    error_message: str | None,
    timestamp: datetime,
    execution_time_ms: int,
) -> Audit:
    """Assemble an ``Audit`` row, enforcing the status/error message pairing."""
    if status == AuditOperationStatus.SUCCESS:
        error_message = None
    elif not error_message or not error_message.strip():
        error_message = DEFAULT_FAILURE_MESSAGE

    details = dict(operation.details)
    details["executionTimeMs"] = execution_time_ms
    details["description"] = operation.description or operation.operation_type.replace("_", " ").capitalize()

    context = get_request_context()
    user_agent = context.user_agent[:USER_AGENT_MAX_LENGTH] if context.user_agent else None

    return Audit(
        id=uuid.uuid4(),
        user_id=user_id,
        username=username,
        cluster_id=cluster_id,
        cluster_name=cluster_name,
        operation_type=operation.operation_type,
        resource_type=operation.resource_type,
        resource_name=operation.resource_name[:RESOURCE_NAME_MAX_LENGTH],
        resource_details=details,
        status=status,
        error_message=error_message[:ERROR_MESSAGE_MAX_LENGTH] if error_message else None,
        timestamp=timestamp,
        client_ip=context.client_ip,
        user_agent=user_agent,
    )


class WriteOperationAuditor:
    """Wraps mutating cluster calls so that each one produces an audit record."""

    def __init__(self, recorder: AuditRecorder, *, enabled: bool | None = None) -> None:
        self.recorder = recorder
        self.enabled = recorder.enabled if enabled is None else enabled

    async def run(
        self,
        operation: WriteOperation,
        *,
        actor: User,
        cluster: ClusterConnection,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        """Invoke ``call`` and audit its outcome.

        Args:
            operation: What the call does and to which resource.
            actor: The authenticated user performing the operation.
            cluster: The cluster the operation targets.
            call: Zero-argument coroutine factory performing the operation.

        Returns:
            Whatever ``call`` returns, including a ``PartialResult``.

        Raises:
            Exception: Whatever ``call`` raises, unchanged.
        """
        if not self.enabled:
            return await call()

        # Snapshot identities before the call can disturb the request session
        user_id, username = actor.id, actor.username
        cluster_id, cluster_name = cluster.id, cluster.name

        timestamp = datetime.now(UTC)
        started = time.perf_counter()
        status = AuditOperationStatus.FAILURE
        error_message: str | None = None
        try:
            result = await call()
        except asyncio.CancelledError:
            error_message = CANCELLED_MESSAGE
            raise
        except Exception as e:
            error_message = describe_error(e)
            raise
        else:
            if isinstance(result, PartialResult):
                status = AuditOperationStatus.PARTIAL
                error_message = result.error_message
            else:
                status = AuditOperationStatus.SUCCESS
            return result
        finally:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            try:
                audit = build_audit(
                    operation,
                    user_id=user_id,
                    username=username,
                    cluster_id=cluster_id,
                    cluster_name=cluster_name,
                    status=status,
                    error_message=error_message,
                    timestamp=timestamp,
                    execution_time_ms=elapsed_ms,
                )
                await self.recorder.record(audit)
            except Exception:
                logger.exception(f"Failed to record audit for {operation.operation_type} on '{operation.resource_name}'")
