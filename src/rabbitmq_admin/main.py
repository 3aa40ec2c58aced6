"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from rabbitmq_admin import __version__
from rabbitmq_admin.core.config import get_settings
from rabbitmq_admin.core.database import dispose_engine, init_engine
from rabbitmq_admin.core.logging import setup_logging
from rabbitmq_admin.core.scheduler import create_scheduler
from rabbitmq_admin.services.audit_interceptor import WriteOperationAuditor
from rabbitmq_admin.services.audit_recorder import AuditRecorder
from rabbitmq_admin.services.audit_retention_service import AuditRetentionSweeper


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle.

    Startup: logging, database engine, audit recorder worker, retention
    scheduler. Shutdown happens in reverse order.
    """
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    logger.info(settings.audit_summary)
    init_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=False,
    )

    recorder: AuditRecorder = app.state.audit_recorder
    recorder.start()

    scheduler = create_scheduler()
    if app.state.retention_sweeper.register(scheduler) is not None:
        scheduler.start()

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await recorder.stop()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="RabbitMQ Admin API",
        description="RabbitMQ cluster administration with audited write operations",
        version=__version__,
        lifespan=lifespan,
    )

    recorder = AuditRecorder.from_settings(settings)
    app.state.audit_recorder = recorder
    app.state.write_auditor = WriteOperationAuditor(recorder)
    app.state.retention_sweeper = AuditRetentionSweeper.from_settings(settings)

    from rabbitmq_admin.api.errors import register_exception_handlers
    from rabbitmq_admin.api.router import create_router, setup_middleware

    register_exception_handlers(app)
    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
