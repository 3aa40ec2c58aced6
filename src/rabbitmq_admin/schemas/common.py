"""Common Pydantic v2 schemas shared across the API.

Every non-2xx response carries an ``ErrorResponse`` whose ``code`` is one of
``ErrorCode`` so clients can tell error kinds apart without parsing messages.
"""

import enum

from pydantic import BaseModel, Field


class ErrorCode(enum.StrEnum):
    """Stable machine-readable error kinds."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    AUDIT_DISABLED = "AUDIT_DISABLED"
    CLUSTER_NOT_FOUND = "CLUSTER_NOT_FOUND"
    RABBITMQ_API_ERROR = "RABBITMQ_API_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class FieldError(BaseModel):
    """A validation problem attributed to one request field."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error message")
    code: str | None = Field(default=None, description="Machine-readable error code")
    errors: list[FieldError] | None = Field(default=None, description="Field-level validation errors")
