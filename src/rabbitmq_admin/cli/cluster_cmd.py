"""Cluster connection CLI commands."""

import asyncio

import typer

cluster_app = typer.Typer()


@cluster_app.command("create")
def create_cluster(
    name: str = typer.Option(..., prompt=True, help="Unique cluster name"),
    api_url: str = typer.Option(..., prompt=True, help="Management API URL, e.g. http://rabbit:15672"),
    username: str = typer.Option(..., prompt=True, help="Management API user"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Management API password"),
    description: str | None = typer.Option(None, help="Optional description"),
) -> None:
    """Register a RabbitMQ cluster connection."""
    asyncio.run(_create_cluster(name, api_url, username, password, description))


async def _create_cluster(name: str, api_url: str, username: str, password: str, description: str | None) -> None:
    from pydantic import ValidationError

    from rabbitmq_admin.core.config import get_settings
    from rabbitmq_admin.core.database import dispose_engine, get_session_factory, init_engine
    from rabbitmq_admin.schemas.cluster import ClusterConnectionCreateRequest
    from rabbitmq_admin.services.cluster_service import create_cluster

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        request = ClusterConnectionCreateRequest(
            name=name,
            api_url=api_url,
            username=username,
            password=password,
            description=description,
        )
        factory = get_session_factory()
        async with factory() as session:
            cluster = await create_cluster(session, request)
            typer.echo(f"Cluster '{cluster.name}' registered with id {cluster.id}")
    except (ValueError, ValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()


@cluster_app.command("list")
def list_clusters() -> None:
    """List registered cluster connections."""
    asyncio.run(_list_clusters())


async def _list_clusters() -> None:
    from rabbitmq_admin.core.config import get_settings
    from rabbitmq_admin.core.database import dispose_engine, get_session_factory, init_engine
    from rabbitmq_admin.services.cluster_service import list_clusters

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        factory = get_session_factory()
        async with factory() as session:
            clusters = await list_clusters(session)
            typer.echo(f"{'Name':<20} {'API URL':<40} {'Active':<8} {'ID'}")
            typer.echo("-" * 106)
            for cluster in clusters:
                typer.echo(f"{cluster.name:<20} {cluster.api_url:<40} {cluster.active!s:<8} {cluster.id}")
            typer.echo(f"\nTotal: {len(clusters)}")
    finally:
        await dispose_engine()


@cluster_app.command("assign")
def assign_user(
    username: str = typer.Argument(..., help="User to grant access"),
    cluster_name: str = typer.Argument(..., help="Cluster to grant access to"),
) -> None:
    """Assign a user to a cluster."""
    asyncio.run(_assign_user(username, cluster_name))


async def _assign_user(username: str, cluster_name: str) -> None:
    from rabbitmq_admin.core.config import get_settings
    from rabbitmq_admin.core.database import dispose_engine, get_session_factory, init_engine
    from rabbitmq_admin.services.auth_service import get_user_by_username
    from rabbitmq_admin.services.cluster_service import (
        ClusterNotFoundError,
        assign_user_to_cluster,
        get_cluster_by_name,
    )

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        factory = get_session_factory()
        async with factory() as session:
            user = await get_user_by_username(session, username)
            if user is None:
                typer.echo(f"Error: user '{username}' not found", err=True)
                raise typer.Exit(code=1)
            cluster = await get_cluster_by_name(session, cluster_name)
            if await assign_user_to_cluster(session, user, cluster):
                typer.echo(f"User '{username}' assigned to cluster '{cluster_name}'")
            else:
                typer.echo(f"User '{username}' is already assigned to cluster '{cluster_name}'")
    except ClusterNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
