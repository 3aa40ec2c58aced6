"""Schema migration commands (users, cluster connections, audits)."""

from typing import TYPE_CHECKING

import typer
from loguru import logger

if TYPE_CHECKING:
    from alembic.config import Config

db_app = typer.Typer()

ConfigOption = typer.Option("alembic.ini", "--config", "-c", help="Path to the Alembic configuration file")


def _alembic_config(path: str) -> "Config":
    from alembic.config import Config

    return Config(path)


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
    config_path: str = ConfigOption,
) -> None:
    """Apply migrations up to the target revision."""
    from alembic import command

    logger.info(f"Migrating audit database schema up to {revision}")
    command.upgrade(_alembic_config(config_path), revision)
    logger.info("Schema upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
    config_path: str = ConfigOption,
) -> None:
    """Roll the schema back to the target revision.

    Rolling back past the initial revision drops the audits table and every
    stored audit record with it.
    """
    from alembic import command

    logger.warning(f"Rolling database schema back to {revision}")
    command.downgrade(_alembic_config(config_path), revision)
    logger.info("Schema downgrade complete")


@db_app.command()
def current(config_path: str = ConfigOption) -> None:
    """Show the revision the database is currently at."""
    from alembic import command

    command.current(_alembic_config(config_path), verbose=True)
