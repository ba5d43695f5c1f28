"""Structured logging configuration for ratiospoof.

Provides logging setup with correlation IDs, structured output,
and configurable log levels. Console output goes to stderr through
rich so it does not tear the live status display on stdout.
"""

from __future__ import annotations

import json
import logging
import logging.config
import time
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from rich.console import Console
from rich.logging import RichHandler

from ratiospoof.exceptions import RatioSpoofError

if TYPE_CHECKING:
    from ratiospoof.models import ObservabilityConfig

# Context variable for correlation ID
correlation_id: ContextVar[str | None] = cast(
    "ContextVar[str | None]",
    ContextVar("correlation_id", default=None),
)


class CorrelationFilter(logging.Filter):
    """Filter to add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record."""
        record.correlation_id = get_correlation_id() or "no-correlation-id"
        return True


class StructuredFormatter(logging.Formatter):
    """Structured JSON formatter for logs."""

    EXCLUDED_KEYS = frozenset(
        {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "exc_info",
            "exc_text",
            "stack_info",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "taskName",
            "correlation_id",
            "message",
        }
    )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry: dict[str, Any] = {
            "timestamp": time.time(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "correlation_id"):
            log_entry["correlation_id"] = record.correlation_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        log_entry.update(
            {
                key: value
                for key, value in record.__dict__.items()
                if key not in self.EXCLUDED_KEYS
            }
        )

        return json.dumps(log_entry, default=str)


def _make_rich_handler() -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )


def setup_logging(config: ObservabilityConfig) -> None:
    """Set up logging configuration."""
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

    level = config.log_level.value
    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
            },
            "rich": {
                "format": "%(message)s",
                "datefmt": "[%X]",
            },
            "simple": {
                "format": "%(asctime)s %(levelname)s %(correlation_id)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "filters": {
            "correlation": {
                "()": CorrelationFilter,
            },
        },
        "handlers": {},
        "loggers": {
            "ratiospoof": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": logging.WARNING,
            "handlers": ["console"],
        },
    }

    if config.structured_logging:
        logging_config["handlers"]["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "structured",
            "filters": ["correlation"],
            "stream": "ext://sys.stderr",
        }
    else:
        logging_config["handlers"]["console"] = {
            "()": _make_rich_handler,
            "level": level,
            "formatter": "rich",
            "filters": ["correlation"],
        }

    if config.log_file:
        logging_config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "structured" if config.structured_logging else "simple",
            "filters": ["correlation"],
            "filename": config.log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "encoding": "utf-8",
        }
        logging_config["loggers"]["ratiospoof"]["handlers"].append("file")

    logging.config.dictConfig(logging_config)

    if config.log_correlation_id:
        set_correlation_id()


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``ratiospoof`` namespace."""
    if name == "ratiospoof" or name.startswith("ratiospoof."):
        return logging.getLogger(name)
    return logging.getLogger(f"ratiospoof.{name}")


def set_correlation_id(corr_id: str | None = None) -> str:
    """Set correlation ID for the current context."""
    if corr_id is None:
        corr_id = str(uuid.uuid4())
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return correlation_id.get()


def log_exception(logger: logging.Logger, exc: Exception, context: str = "") -> None:
    """Log an exception with context."""
    if isinstance(exc, RatioSpoofError):
        logger.error(
            "%s: %s",
            context,
            exc.message,
            extra={"details": exc.details},
            exc_info=logger.isEnabledFor(logging.DEBUG),
        )
    else:
        logger.error("%s: %s", context, exc, exc_info=True)
