"""Typer CLI root application with serve command."""

import typer

from rabbitmq_admin.core.config import get_settings
from rabbitmq_admin.core.logging import setup_logging

app = typer.Typer(name="rabbitmq-admin", help="RabbitMQ cluster administration CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8080, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "rabbitmq_admin.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from rabbitmq_admin.cli.audit_cmd import audit_app
    from rabbitmq_admin.cli.cluster_cmd import cluster_app
    from rabbitmq_admin.cli.db_cmd import db_app
    from rabbitmq_admin.cli.user_cmd import user_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(user_app, name="user", help="User management commands")
    app.add_typer(cluster_app, name="cluster", help="Cluster connection commands")
    app.add_typer(audit_app, name="audit", help="Write-operation audit commands")


_register_subcommands()
