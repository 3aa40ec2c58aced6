"""Audit recorder: persists completed write-operation audit records.

In synchronous mode a record is committed in its own short-lived session
before ``record()`` returns. In asynchronous mode ``record()`` only puts the
record on a bounded in-memory queue; a single background worker drains the
queue and commits up to ``batch_size`` records per transaction.

Persistence failures are logged and never raised to the caller. A failed
batch is dropped rather than retried.
"""

import asyncio
import contextlib
from collections.abc import Callable
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from rabbitmq_admin.core.config import Settings
from rabbitmq_admin.core.database import get_session_factory
from rabbitmq_admin.models.audit import Audit


class AuditRecorder:
    """Persist audit records inline or through a batching background worker.

    Args:
        session_factory: Factory for short-lived sessions. Defaults to the
            application-wide factory from ``core.database``, resolved lazily.
        async_processing: Queue records for the background worker instead of
            committing inline.
        batch_size: Maximum number of records per transaction in async mode.
        queue_capacity: Maximum number of records waiting in the queue.
        shutdown_timeout: Seconds ``stop()`` waits for the queue to drain.
        retention_days: Informational retention horizon, reported by
            ``configuration()``.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] | None = None,
        *,
        enabled: bool = True,
        async_processing: bool = True,
        batch_size: int = 100,
        queue_capacity: int = 10000,
        shutdown_timeout: float = 5.0,
        retention_days: int = 90,
    ) -> None:
        self._session_factory = session_factory
        self.enabled = enabled
        self.async_processing = async_processing
        self.batch_size = batch_size
        self.queue_capacity = queue_capacity
        self.shutdown_timeout = shutdown_timeout
        self.retention_days = retention_days
        self._queue: asyncio.Queue[Audit] = asyncio.Queue(maxsize=queue_capacity)
        self._worker: asyncio.Task[None] | None = None
        self.persisted_count = 0
        self.dropped_count = 0
        self.failed_count = 0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: Callable[[], AsyncSession] | None = None,
    ) -> "AuditRecorder":
        return cls(
            session_factory,
            enabled=settings.audit_write_operations_enabled,
            async_processing=settings.audit_async_processing,
            batch_size=settings.audit_batch_size,
            queue_capacity=settings.audit_queue_capacity,
            shutdown_timeout=settings.audit_shutdown_timeout,
            retention_days=settings.audit_retention_days,
        )

    @property
    def pending(self) -> int:
        """Number of records waiting for the background worker."""
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def configuration(self) -> dict[str, Any]:
        """Effective recorder configuration."""
        return {
            "enabled": self.enabled,
            "retention_days": self.retention_days,
            "batch_size": self.batch_size,
            "async_processing": self.async_processing,
            "queue_capacity": self.queue_capacity,
        }

    def status(self) -> dict[str, Any]:
        """Worker state and record counters since startup."""
        return {
            "running": self.running,
            "pending": self.pending,
            "persisted": self.persisted_count,
            "dropped": self.dropped_count,
            "failed": self.failed_count,
        }

    def _new_session(self) -> AsyncSession:
        factory = self._session_factory or get_session_factory()
        return factory()

    def start(self) -> None:
        """Start the background flush worker (async mode only)."""
        if not self.enabled or not self.async_processing or self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="audit-recorder")
        logger.info(
            "Audit recorder worker started (batch_size={}, queue_capacity={})",
            self.batch_size,
            self.queue_capacity,
        )

    async def stop(self) -> None:
        """Drain the queue within ``shutdown_timeout`` and stop the worker.

        Records still queued when the timeout expires are dropped and counted.
        """
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.shutdown_timeout)
        except TimeoutError:
            logger.warning(f"Audit queue not drained within {self.shutdown_timeout}s")
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None

        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            self.dropped_count += dropped
            logger.warning(f"Dropped {dropped} queued audit records on shutdown")
        logger.info("Audit recorder worker stopped")

    async def record(self, audit: Audit) -> None:
        """Persist or enqueue a completed audit record. Never raises."""
        if not self.async_processing:
            await self._persist([audit])
            return
        try:
            self._queue.put_nowait(audit)
        except asyncio.QueueFull:
            self.dropped_count += 1
            logger.warning(
                "Audit queue full (capacity {}), dropping record for {} on {}",
                self.queue_capacity,
                audit.operation_type,
                audit.resource_name,
            )

    def _take_batch(self, first: Audit) -> list[Audit]:
        batch = [first]
        while len(batch) < self.batch_size:
            try:
                batch.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                break
        return batch

    async def _run(self) -> None:
        while True:
            batch = self._take_batch(await self._queue.get())
            try:
                await self._persist(batch)
            except Exception:
                self.failed_count += len(batch)
                logger.exception(f"Audit recorder worker failed on {len(batch)} record(s); continuing")
            finally:
                for _ in batch:
                    self._queue.task_done()

    async def _persist(self, batch: list[Audit]) -> None:
        # Snapshot before commit; the session may expire attributes on commit
        entries = [_log_entry(audit) for audit in batch]
        try:
            async with self._new_session() as session:
                session.add_all(batch)
                await session.commit()
        except Exception:
            self.failed_count += len(batch)
            logger.exception(f"Failed to persist {len(batch)} audit record(s); batch dropped")
            return

        self.persisted_count += len(batch)
        for fields, message in entries:
            logger.bind(audit=True, **fields).info(message)


def _log_entry(audit: Audit) -> tuple[dict[str, Any], str]:
    fields = {
        "audit_id": str(audit.id),
        "user": audit.username,
        "cluster": audit.cluster_name,
        "client_ip": audit.client_ip,
    }
    message = f"{audit.operation_type} {audit.resource_type} '{audit.resource_name}' {audit.status}"
    if audit.error_message:
        message += f": {audit.error_message}"
    return fields, message
