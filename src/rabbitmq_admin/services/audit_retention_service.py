"""Retention sweeper for write-operation audit records.

Deletes records whose ``timestamp`` is older than the configured horizon in
batches of ``RETENTION_BATCH_SIZE``, one transaction per batch. The sweep runs
on a cron schedule and can also be triggered manually.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.job import Job
from apscheduler.schedulers.base import BaseScheduler
from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from rabbitmq_admin.core.config import Settings
from rabbitmq_admin.core.database import get_session_factory
from rabbitmq_admin.core.scheduler import parse_cron_expression
from rabbitmq_admin.models.audit import Audit

RETENTION_BATCH_SIZE = 1000
RETENTION_JOB_ID = "audit-retention-sweep"


class AuditRetentionError(Exception):
    """A manually triggered retention sweep failed."""


async def delete_audits_before(
    session_factory: Callable[[], AsyncSession],
    cutoff: datetime,
    batch_size: int = RETENTION_BATCH_SIZE,
) -> int:
    """Delete audit records with ``timestamp`` strictly before ``cutoff``.

    Each batch is deleted and committed in its own session. The loop stops
    once a batch removes fewer than ``batch_size`` rows.

    Args:
        session_factory: Factory for short-lived sessions.
        cutoff: Records older than this are deleted.
        batch_size: Maximum rows deleted per transaction.

    Returns:
        Total number of deleted records.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If a batch fails. Batches committed
            before the failure stay deleted.
    """
    total = 0
    batch_number = 0
    while True:
        batch_number += 1
        expired_ids = select(Audit.id).where(Audit.timestamp < cutoff).limit(batch_size)
        async with session_factory() as session:
            result = await session.execute(
                delete(Audit).where(Audit.id.in_(expired_ids)).execution_options(synchronize_session=False)
            )
            await session.commit()
        deleted = result.rowcount or 0
        total += deleted
        logger.debug(f"Retention batch {batch_number}: deleted {deleted} audit records")
        if deleted < batch_size:
            return total


class AuditRetentionSweeper:
    """Periodically deletes audit records older than ``retention_days``."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] | None = None,
        *,
        enabled: bool = True,
        retention_days: int = 90,
        schedule: str = "0 0 0 * * ?",
        batch_size: int = RETENTION_BATCH_SIZE,
    ) -> None:
        self._session_factory = session_factory
        self.enabled = enabled
        self.retention_days = retention_days
        self.schedule = schedule
        self.batch_size = batch_size
        self.last_run_at: datetime | None = None
        self.last_deleted: int | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: Callable[[], AsyncSession] | None = None,
    ) -> "AuditRetentionSweeper":
        return cls(
            session_factory,
            enabled=settings.audit_cleanup_enabled,
            retention_days=settings.audit_cleanup_days,
            schedule=settings.audit_cleanup_schedule,
        )

    def cutoff(self, now: datetime | None = None) -> datetime:
        return (now or datetime.now(UTC)) - timedelta(days=self.retention_days)

    def configuration(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "days": self.retention_days,
            "schedule": self.schedule,
            "batch_size": self.batch_size,
        }

    def status(self) -> dict[str, Any]:
        return {"last_run_at": self.last_run_at, "last_deleted": self.last_deleted}

    def register(self, scheduler: BaseScheduler) -> Job | None:
        """Add the scheduled sweep to ``scheduler``; no-op when cleanup is disabled."""
        if not self.enabled:
            logger.info("Audit retention cleanup disabled; no sweep scheduled")
            return None
        job = scheduler.add_job(
            self.run_scheduled,
            trigger=parse_cron_expression(self.schedule),
            id=RETENTION_JOB_ID,
            name="Audit retention sweep",
            replace_existing=True,
        )
        logger.info(f"Audit retention sweep scheduled with '{self.schedule}' ({self.retention_days} days)")
        return job

    async def sweep(self, now: datetime | None = None) -> int:
        """Run one sweep and return the number of deleted records.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If any batch fails.
        """
        cutoff = self.cutoff(now)
        logger.info(f"Starting audit retention sweep (cutoff {cutoff.isoformat()})")
        factory = self._session_factory or get_session_factory()
        deleted = await delete_audits_before(factory, cutoff, self.batch_size)
        self.last_run_at = datetime.now(UTC)
        self.last_deleted = deleted
        logger.info(f"Audit retention sweep finished: deleted {deleted} records older than {self.retention_days} days")
        return deleted

    async def run_scheduled(self) -> None:
        """Scheduler entry point. Failures abort this sweep only and are logged."""
        try:
            await self.sweep()
        except Exception:
            logger.exception("Audit retention sweep failed; will retry on next schedule")

    async def sweep_now(self) -> int:
        """Run a sweep on demand.

        Returns:
            Number of deleted records, 0 when cleanup is disabled.

        Raises:
            AuditRetentionError: If the sweep fails.
        """
        if not self.enabled:
            logger.warning("Manual audit retention sweep requested but cleanup is disabled")
            return 0
        try:
            return await self.sweep()
        except Exception as e:
            logger.exception("Manual audit retention sweep failed")
            msg = f"Audit retention sweep failed: {e}"
            raise AuditRetentionError(msg) from e
