"""Request context, CORS, and security headers middleware."""

from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from rabbitmq_admin.core.config import Settings
from rabbitmq_admin.core.request_context import reset_request_context, set_request_context

_DEFAULT_TRUSTED_HEADERS = ["X-Forwarded-For", "X-Real-IP"]


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str | None:
    """Extract the real client IP from proxy headers or the direct connection.

    Checks headers in priority order. For X-Forwarded-For, uses the
    leftmost (client-supplied) IP. Falls back to request.client.host.

    Args:
        request: The incoming Starlette request.
        trusted_headers: Ordered list of header names to check.
            Defaults to ["X-Forwarded-For", "X-Real-IP"].

    Returns:
        The client IP address string, or None if not determinable.
    """
    headers = trusted_headers if trusted_headers is not None else _DEFAULT_TRUSTED_HEADERS

    for header in headers:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        # X-Forwarded-For can contain multiple IPs: "client, proxy1, proxy2"
        if header.lower() == "x-forwarded-for":
            return value.split(",")[0].strip()[:45]
        return value[:45]

    if request.client:
        return request.client.host
    return None


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware on the FastAPI app."""
    kwargs: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }
    if settings.cors_origin_list:
        kwargs["allow_origins"] = settings.cors_origin_list
    if settings.cors_origin_regex.strip():
        kwargs["allow_origin_regex"] = settings.cors_origin_regex.strip()
    app.add_middleware(CORSMiddleware, **kwargs)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Expose client IP and User-Agent of the current request to the audit layer."""

    def __init__(self, app: ASGIApp, trusted_proxy_headers: list[str] | None = None) -> None:
        super().__init__(app)
        self.trusted_proxy_headers = trusted_proxy_headers

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        token = set_request_context(
            client_ip=get_client_ip(request, self.trusted_proxy_headers),
            user_agent=request.headers.get("user-agent"),
        )
        try:
            return await call_next(request)
        finally:
            reset_request_context(token)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
