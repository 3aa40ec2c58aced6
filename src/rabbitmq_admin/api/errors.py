"""Exception handlers translating errors into ``ErrorResponse`` bodies.

Every error response carries a stable ``code`` from ``ErrorCode`` so clients
can tell "auditing disabled", "permission denied", "not found" and upstream
RabbitMQ failures apart without parsing messages.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from rabbitmq_admin.lib.rabbitmq import RabbitMQApiError
from rabbitmq_admin.schemas.common import ErrorCode, ErrorResponse, FieldError
from rabbitmq_admin.services.audit_service import AuditDisabledError, AuditFilterValidationError
from rabbitmq_admin.services.cluster_service import ClusterNotFoundError

_HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHENTICATED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_500_INTERNAL_SERVER_ERROR: ErrorCode.INTERNAL_ERROR,
}


def error_response(
    status_code: int,
    detail: str,
    code: str | None,
    errors: list[FieldError] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(detail=detail, code=code, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def _field_name(loc: tuple | list) -> str:
    names = [str(part) for part in loc if part not in ("query", "path", "body", "header")]
    return ".".join(names) or "request"


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on ``app``."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(
            exc.status_code,
            str(exc.detail),
            _HTTP_ERROR_CODES.get(exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [FieldError(field=_field_name(err.get("loc", ())), message=err.get("msg", "")) for err in exc.errors()]
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "Request validation failed",
            ErrorCode.VALIDATION_ERROR,
            errors,
        )

    @app.exception_handler(AuditFilterValidationError)
    async def audit_filter_handler(request: Request, exc: AuditFilterValidationError) -> JSONResponse:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            exc.message,
            ErrorCode.VALIDATION_ERROR,
            [FieldError(field=exc.field, message=exc.message)],
        )

    @app.exception_handler(AuditDisabledError)
    async def audit_disabled_handler(request: Request, exc: AuditDisabledError) -> JSONResponse:
        return error_response(status.HTTP_404_NOT_FOUND, str(exc), ErrorCode.AUDIT_DISABLED)

    @app.exception_handler(ClusterNotFoundError)
    async def cluster_not_found_handler(request: Request, exc: ClusterNotFoundError) -> JSONResponse:
        return error_response(status.HTTP_404_NOT_FOUND, str(exc), ErrorCode.CLUSTER_NOT_FOUND)

    @app.exception_handler(RabbitMQApiError)
    async def rabbitmq_error_handler(request: Request, exc: RabbitMQApiError) -> JSONResponse:
        # Upstream client errors pass through; everything else is a bad gateway
        if exc.status_code is not None and 400 <= exc.status_code < 500:
            status_code = exc.status_code
        else:
            status_code = status.HTTP_502_BAD_GATEWAY
        return error_response(status_code, exc.message, ErrorCode.RABBITMQ_API_ERROR)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            ErrorCode.INTERNAL_ERROR,
        )
