"""FastAPI dependency injection for sessions, auth, cluster access and auditing.

Provides get_async_session, get_current_user, the require_role factory,
the cluster-access check for write endpoints, and accessors for the audit
recorder, write auditor and retention sweeper held on ``app.state``.
"""

import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rabbitmq_admin.core.config import Settings, get_settings
from rabbitmq_admin.core.database import get_session_factory
from rabbitmq_admin.core.security import decode_token
from rabbitmq_admin.models.cluster_connection import ClusterConnection
from rabbitmq_admin.models.user import User
from rabbitmq_admin.services.audit_interceptor import WriteOperationAuditor
from rabbitmq_admin.services.audit_recorder import AuditRecorder
from rabbitmq_admin.services.audit_retention_service import AuditRetentionSweeper
from rabbitmq_admin.services.cluster_service import get_cluster, user_can_access_cluster

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Decode the bearer token and return the authenticated user.

    Raises:
        HTTPException: 401 if the token is invalid or the user is unknown or inactive.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
        username: str | None = payload.get("sub")
        if username is None:
            raise credentials_exception
    except Exception as exc:
        raise credentials_exception from exc

    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise credentials_exception
    return user


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring one of ``roles``.

    Returns:
        A FastAPI dependency that yields the current user or raises 403.
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_user.role}' does not have access to this resource",
            )
        return current_user

    return role_checker


async def get_accessible_cluster(
    cluster_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ClusterConnection:
    """Resolve the ``cluster_id`` path parameter for the current user.

    Raises:
        ClusterNotFoundError: If the cluster does not exist or is inactive.
        HTTPException: 403 if the user is not assigned to the cluster.
    """
    cluster = await get_cluster(session, cluster_id)
    if not await user_can_access_cluster(session, current_user, cluster.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User '{current_user.username}' is not assigned to cluster '{cluster.name}'",
        )
    return cluster


def get_audit_recorder(request: Request) -> AuditRecorder:
    return request.app.state.audit_recorder


def get_write_auditor(request: Request) -> WriteOperationAuditor:
    return request.app.state.write_auditor


def get_retention_sweeper(request: Request) -> AuditRetentionSweeper:
    return request.app.state.retention_sweeper
