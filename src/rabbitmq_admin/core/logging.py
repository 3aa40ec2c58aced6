"""Loguru logging configuration.

Sets up a human-readable stderr sink, an opt-in JSON sink for records bound
with ``json_output=True``, and, when a log directory is configured, two
rotating file sinks: the application log and a dedicated write-audit log that
receives only records bound with ``audit=True``.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
_AUDIT_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} | {message} | {extra}"


def _is_audit_record(record: dict) -> bool:
    return bool(record["extra"].get("audit", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files. When set, ``rabbitmq-admin.log``
            and ``write-audit.log`` are written there, rotated every 24 hours.
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, serialize=False)
    logger.add(
        sys.stderr,
        level=level,
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "rabbitmq-admin.log",
            level=level,
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
        )
        logger.add(
            log_path / "write-audit.log",
            level="INFO",
            format=_AUDIT_FORMAT,
            filter=_is_audit_record,
            rotation="24h",
            retention="30 days",
        )
