"""
Logging configuration and helpers.
Every record carries a correlation_id so request logs can be traced end to end.
"""
import logging
import sys
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | correlation_id=%(correlation_id)s | %(message)s"

# LOG_LEVEL values as written in the environment
LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class CorrelationIdFilter(logging.Filter):
    """Guarantees the correlation_id attribute the format string expects."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "N/A"
        return True


logger = logging.getLogger("esg_platform")
logger.addFilter(CorrelationIdFilter())

_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "info") -> None:
    """
    Installs the application handler on the root logger and applies LOG_LEVEL.
    Safe to call more than once; only the level changes on subsequent calls.
    """
    global _handler

    numeric_level = LOG_LEVELS[level]
    root = logging.getLogger()

    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _handler.addFilter(CorrelationIdFilter())
        root.addHandler(_handler)

    root.setLevel(numeric_level)
    logger.setLevel(numeric_level)

    # Quieten noisy third-party loggers
    for name in ("sqlalchemy.engine", "uvicorn.access"):
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger_with_correlation(correlation_id: str) -> logging.LoggerAdapter:
    """Returns a logger that stamps every record with the given correlation id."""
    return logging.LoggerAdapter(logger, {"correlation_id": correlation_id})


def audit_log(action: str, user: str, resource: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Emits a structured audit trail entry."""
    details = details or {}
    logger.info(
        "AUDIT | action=%s | user=%s | resource=%s | details=%s",
        action,
        user,
        resource,
        details,
        extra={"correlation_id": details.get("correlation_id", "N/A")},
    )
