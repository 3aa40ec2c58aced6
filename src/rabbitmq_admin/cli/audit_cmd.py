"""Write-operation audit CLI commands."""

import asyncio

import typer

audit_app = typer.Typer()


@audit_app.command("cleanup")
def cleanup() -> None:
    """Delete audit records older than AUDIT_CLEANUP_DAYS now, outside the schedule."""
    asyncio.run(_cleanup())


async def _cleanup() -> None:
    from rabbitmq_admin.core.config import get_settings
    from rabbitmq_admin.core.database import dispose_engine, get_session_factory, init_engine
    from rabbitmq_admin.services.audit_retention_service import AuditRetentionError, AuditRetentionSweeper

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        sweeper = AuditRetentionSweeper.from_settings(settings, get_session_factory())
        if not sweeper.enabled:
            typer.echo("Audit cleanup is disabled (AUDIT_CLEANUP_ENABLED=false); nothing deleted")
            return
        deleted = await sweeper.sweep_now()
        typer.echo(f"Deleted {deleted} audit records older than {sweeper.retention_days} days")
    except AuditRetentionError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()


@audit_app.command("config")
def show_config() -> None:
    """Print the effective audit configuration."""
    from rabbitmq_admin.core.config import get_settings

    settings = get_settings()
    rows = [
        ("AUDIT_WRITE_OPERATIONS_ENABLED", settings.audit_write_operations_enabled),
        ("AUDIT_RETENTION_DAYS", settings.audit_retention_days),
        ("AUDIT_BATCH_SIZE", settings.audit_batch_size),
        ("AUDIT_ASYNC_PROCESSING", settings.audit_async_processing),
        ("AUDIT_QUEUE_CAPACITY", settings.audit_queue_capacity),
        ("AUDIT_SHUTDOWN_TIMEOUT", settings.audit_shutdown_timeout),
        ("AUDIT_CLEANUP_ENABLED", settings.audit_cleanup_enabled),
        ("AUDIT_CLEANUP_DAYS", settings.audit_cleanup_days),
        ("AUDIT_CLEANUP_SCHEDULE", settings.audit_cleanup_schedule),
    ]
    for name, value in rows:
        typer.echo(f"{name:<32} {value}")
