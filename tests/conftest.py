"""Shared test fixtures for async database, sessions, users, clusters and auth tokens."""

import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rabbitmq_admin.core.config import Settings
from rabbitmq_admin.core.security import create_access_token, hash_password
from rabbitmq_admin.models.base import Base
from rabbitmq_admin.models.cluster_connection import ClusterConnection
from rabbitmq_admin.models.user import User


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        audit_write_operations_enabled=True,
        audit_async_processing=False,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine shared by every session of a test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


async def _add_user(session: AsyncSession, username: str, role: str) -> User:
    user = User(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@test.com",
        hashed_password=hash_password("testpassword123"),
        role=role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
async def admin_user(async_session: AsyncSession) -> User:
    """Create an administrator in the test database."""
    return await _add_user(async_session, "testadmin", "admin")


@pytest.fixture
async def regular_user(async_session: AsyncSession) -> User:
    """Create a non-administrator in the test database."""
    return await _add_user(async_session, "testuser", "user")


@pytest.fixture
async def cluster(async_session: AsyncSession) -> ClusterConnection:
    """Register the ``prod`` cluster in the test database."""
    connection = ClusterConnection(
        id=uuid.uuid4(),
        name="prod",
        api_url="http://rabbit.test:15672",
        username="guest",
        password="guest",
    )
    async_session.add(connection)
    await async_session.commit()
    await async_session.refresh(connection)
    return connection


@pytest.fixture
def admin_token(settings: Settings) -> str:
    """Generate a JWT access token for the administrator."""
    return create_access_token(
        subject="testadmin",
        role="admin",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def user_token(settings: Settings) -> str:
    """Generate a JWT access token for the non-administrator."""
    return create_access_token(
        subject="testuser",
        role="user",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
