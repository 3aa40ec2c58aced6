"""Cluster connection service: registration, lookup and user assignment."""

import uuid

from loguru import logger
from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from rabbitmq_admin.models.cluster_connection import ClusterConnection, user_cluster_assignments
from rabbitmq_admin.models.user import User
from rabbitmq_admin.schemas.cluster import ClusterConnectionCreateRequest


class ClusterNotFoundError(LookupError):
    """No active cluster connection exists with the requested id or name."""

    def __init__(self, cluster: uuid.UUID | str) -> None:
        self.cluster = cluster
        super().__init__(f"Cluster connection '{cluster}' not found")


async def get_cluster(session: AsyncSession, cluster_id: uuid.UUID) -> ClusterConnection:
    """Return an active cluster connection.

    Raises:
        ClusterNotFoundError: If the cluster does not exist or is inactive.
    """
    cluster = await session.get(ClusterConnection, cluster_id)
    if cluster is None or not cluster.active:
        raise ClusterNotFoundError(cluster_id)
    return cluster


async def get_cluster_by_name(session: AsyncSession, name: str) -> ClusterConnection:
    result = await session.execute(select(ClusterConnection).where(ClusterConnection.name == name))
    cluster = result.scalar_one_or_none()
    if cluster is None:
        raise ClusterNotFoundError(name)
    return cluster


async def create_cluster(session: AsyncSession, request: ClusterConnectionCreateRequest) -> ClusterConnection:
    """Register a new cluster connection.

    Raises:
        ValueError: If a cluster with the same name already exists.
    """
    existing = await session.execute(select(ClusterConnection.id).where(ClusterConnection.name == request.name))
    if existing.scalar_one_or_none() is not None:
        msg = f"Cluster connection '{request.name}' already exists"
        raise ValueError(msg)

    cluster = ClusterConnection(
        name=request.name,
        api_url=str(request.api_url).rstrip("/"),
        username=request.username,
        password=request.password,
        description=request.description,
    )
    session.add(cluster)
    await session.commit()
    await session.refresh(cluster)
    logger.info(f"Registered cluster connection '{cluster.name}' ({cluster.api_url})")
    return cluster


async def list_clusters(session: AsyncSession) -> list[ClusterConnection]:
    result = await session.execute(select(ClusterConnection).order_by(ClusterConnection.name))
    return list(result.scalars().all())


async def assign_user_to_cluster(session: AsyncSession, user: User, cluster: ClusterConnection) -> bool:
    """Grant ``user`` access to ``cluster``.

    Returns:
        True if a new assignment was created, False if it already existed.
    """
    if await is_assigned(session, user.id, cluster.id):
        return False
    await session.execute(insert(user_cluster_assignments).values(user_id=user.id, cluster_id=cluster.id))
    await session.commit()
    logger.info(f"Assigned user '{user.username}' to cluster '{cluster.name}'")
    return True


async def is_assigned(session: AsyncSession, user_id: uuid.UUID, cluster_id: uuid.UUID) -> bool:
    result = await session.execute(
        select(func.count())
        .select_from(user_cluster_assignments)
        .where(
            user_cluster_assignments.c.user_id == user_id,
            user_cluster_assignments.c.cluster_id == cluster_id,
        )
    )
    return result.scalar_one() > 0


async def user_can_access_cluster(session: AsyncSession, user: User, cluster_id: uuid.UUID) -> bool:
    """Administrators can access every cluster; other users only assigned ones."""
    if user.is_admin:
        return True
    return await is_assigned(session, user.id, cluster_id)
