"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables (or ``.env``).
Audit settings are validated when ``Settings`` is constructed, so an
out-of-range value aborts application startup with a message naming the
property, the offending value and the valid range.
"""

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rabbitmq_admin.core.scheduler import parse_cron_expression

RETENTION_DAYS_MIN = 1
RETENTION_DAYS_MAX = 36500
BATCH_SIZE_MIN = 1
BATCH_SIZE_MAX = 10000
QUEUE_CAPACITY_MIN = 1
QUEUE_CAPACITY_MAX = 1_000_000


def _check_range(name: str, value: int, low: int, high: int, hint: str) -> int:
    if value < low:
        msg = f"{name} must be at least {low} (got {value}, valid range {low}-{high}). {hint}"
        raise ValueError(msg)
    if value > high:
        msg = f"{name} cannot exceed {high} (got {value}, valid range {low}-{high}). {hint}"
        raise ValueError(msg)
    return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string (postgresql+asyncpg://...)",
    )
    database_pool_size: int = Field(default=10, description="Connection pool size", gt=0)
    database_max_overflow: int = Field(default=5, description="Connections allowed beyond the pool size", ge=0)

    # JWT
    jwt_secret_key: str = Field(min_length=32, description="Secret key for signing JWTs (minimum 32 characters)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_access_token_expire_minutes: int = Field(
        default=30,
        description="Access token expiration in minutes",
        gt=0,
    )

    # RabbitMQ Management API
    rabbitmq_request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for calls to the RabbitMQ Management API",
        gt=0,
    )

    # Write-operation audit
    audit_write_operations_enabled: bool = Field(
        default=False,
        description="Record an audit entry for every write operation against a cluster",
    )
    audit_retention_days: int = Field(
        default=90,
        description="Nominal number of days audit records are kept (informational; see audit_cleanup_days)",
    )
    audit_batch_size: int = Field(
        default=100,
        description="Maximum number of queued audit records persisted per transaction in async mode",
    )
    audit_async_processing: bool = Field(
        default=True,
        description="Persist audit records from a background worker instead of inline",
    )
    audit_queue_capacity: int = Field(
        default=10000,
        description="Maximum number of audit records waiting for the background worker",
    )
    audit_shutdown_timeout: float = Field(
        default=5.0,
        description="Seconds allowed for draining queued audit records on shutdown",
        gt=0,
    )

    # Audit retention cleanup
    audit_cleanup_enabled: bool = Field(
        default=True,
        description="Periodically delete audit records older than audit_cleanup_days",
    )
    audit_cleanup_days: int = Field(
        default=90,
        description="Age in days after which audit records are deleted by the cleanup job",
    )
    audit_cleanup_schedule: str = Field(
        default="0 0 0 * * ?",
        description="Cron expression for the cleanup job (Spring 6/7-field or 5-field crontab)",
    )

    @field_validator("audit_retention_days", "audit_cleanup_days")
    @classmethod
    def validate_retention_days(cls, v: int, info: ValidationInfo) -> int:
        return _check_range(
            info.field_name or "retention days",
            v,
            RETENTION_DAYS_MIN,
            RETENTION_DAYS_MAX,
            "Consider 7 days for development or 90+ days for production.",
        )

    @field_validator("audit_batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        return _check_range(
            "audit_batch_size",
            v,
            BATCH_SIZE_MIN,
            BATCH_SIZE_MAX,
            "Consider 10 for development or 100-1000 for production.",
        )

    @field_validator("audit_queue_capacity")
    @classmethod
    def validate_queue_capacity(cls, v: int) -> int:
        return _check_range(
            "audit_queue_capacity",
            v,
            QUEUE_CAPACITY_MIN,
            QUEUE_CAPACITY_MAX,
            "The queue only buffers records between flushes.",
        )

    @field_validator("audit_cleanup_schedule")
    @classmethod
    def validate_cleanup_schedule(cls, v: str) -> str:
        if not v.strip():
            msg = "audit_cleanup_schedule must not be empty. Example: '0 0 0 * * ?' for daily at midnight."
            raise ValueError(msg)
        try:
            parse_cron_expression(v)
        except ValueError as e:
            msg = f"audit_cleanup_schedule must be a valid cron expression (got '{v}'): {e}"
            raise ValueError(msg) from e
        return v.strip()

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables application and write-audit log files)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )
    cors_origin_regex: str = Field(
        default="",
        description="Regex pattern for allowed CORS origins",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_prefix: str = Field(
        default="/api",
        description="Prefix for all API routes",
    )
    trusted_proxy_headers: str = Field(
        default="X-Forwarded-For,X-Real-IP",
        description="Comma-separated list of HTTP headers to check for real client IP, in priority order",
    )

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        """Parse trusted proxy headers string into a list."""
        if not self.trusted_proxy_headers.strip():
            return []
        return [h.strip() for h in self.trusted_proxy_headers.split(",") if h.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def audit_summary(self) -> str:
        """One-line summary of the audit configuration for startup logging."""
        return (
            f"Audit configuration: enabled={self.audit_write_operations_enabled}, "
            f"retention={self.audit_retention_days} days, batch={self.audit_batch_size}, "
            f"async={self.audit_async_processing}; cleanup: enabled={self.audit_cleanup_enabled}, "
            f"days={self.audit_cleanup_days}, schedule='{self.audit_cleanup_schedule}'"
        )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
