"""Root API router and middleware registration."""

from fastapi import APIRouter, FastAPI

from rabbitmq_admin.api.middleware import RequestContextMiddleware, SecurityHeadersMiddleware, setup_cors
from rabbitmq_admin.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included."""
    from rabbitmq_admin.api.routes.audits import audits_router
    from rabbitmq_admin.api.routes.auth import router as auth_router
    from rabbitmq_admin.api.routes.resources import resources_router

    root_router = APIRouter(prefix=settings.api_prefix)
    root_router.include_router(auth_router)
    root_router.include_router(audits_router)
    root_router.include_router(resources_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app."""
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware, trusted_proxy_headers=settings.trusted_proxy_header_list)
