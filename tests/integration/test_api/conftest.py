"""Fixtures for HTTP-level tests: a fully wired app, an HTTP client and a fake Management API."""

from collections.abc import AsyncGenerator, Callable
from unittest.mock import patch

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rabbitmq_admin.core.config import Settings, get_settings
from rabbitmq_admin.core.dependencies import get_async_session
from rabbitmq_admin.lib.rabbitmq import RabbitMQManagementClient
from rabbitmq_admin.main import create_app
from rabbitmq_admin.models.cluster_connection import ClusterConnection
from rabbitmq_admin.services.audit_interceptor import WriteOperationAuditor
from rabbitmq_admin.services.audit_recorder import AuditRecorder
from rabbitmq_admin.services.audit_retention_service import AuditRetentionSweeper


class FakeManagementApi:
    """httpx MockTransport handler standing in for a RabbitMQ node.

    Unregistered requests succeed with 204; ``fail`` registers an error response.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._errors: dict[tuple[str, str], httpx.Response] = {}

    def fail(self, method: str, raw_path: str, status_code: int, reason: str) -> None:
        self._errors[(method, raw_path)] = httpx.Response(
            status_code,
            json={"error": "Object Not Found", "reason": reason},
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        error = self._errors.get((request.method, request.url.raw_path.decode()))
        if error is not None:
            return error
        if request.url.path.endswith("/publish"):
            return httpx.Response(200, json={"routed": True})
        return httpx.Response(204)


@pytest.fixture
def rabbitmq() -> FakeManagementApi:
    fake = FakeManagementApi()

    def client_for(cluster: ClusterConnection, timeout: float) -> RabbitMQManagementClient:
        return RabbitMQManagementClient(
            cluster.api_url,
            cluster.username,
            cluster.password,
            timeout=timeout,
            transport=httpx.MockTransport(fake),
        )

    with patch("rabbitmq_admin.services.resource_service.get_management_client", side_effect=client_for):
        yield fake


@pytest.fixture
def build_app(settings: Settings, session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., FastAPI]:
    """Create the application wired to the test database with a synchronous recorder."""

    def _build(*, audit_enabled: bool = True) -> FastAPI:
        with patch("rabbitmq_admin.main.get_settings", return_value=settings):
            app = create_app()

        recorder = AuditRecorder(session_factory, enabled=audit_enabled, async_processing=False)
        app.state.audit_recorder = recorder
        app.state.write_auditor = WriteOperationAuditor(recorder)
        app.state.retention_sweeper = AuditRetentionSweeper(session_factory, retention_days=30)

        async def _session() -> AsyncGenerator[AsyncSession]:
            async with session_factory() as session:
                yield session

        app.dependency_overrides[get_async_session] = _session
        app.dependency_overrides[get_settings] = lambda: settings
        return app

    return _build


@pytest.fixture
async def client(build_app: Callable[..., FastAPI]) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=build_app())
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
async def disabled_client(build_app: Callable[..., FastAPI]) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=build_app(audit_enabled=False))
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
