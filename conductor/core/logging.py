# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Structured logging for Conductor.

Provides JSON-formatted logging for easy parsing and analysis.
Pipeline runs emit one event per step transition.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Tuple, Union


_RESERVED_RECORD_FIELDS = frozenset([
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName",
    "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "taskName"
])


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON for easy parsing by log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_FIELDS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Simple text formatter for human-readable logs."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_format: str = "json"
) -> logging.Logger:
    """
    Get configured logger instance.

    Args:
        name: Logger name (usually __name__)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format type (json or text)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    # Choose formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


class RunLogger(logging.LoggerAdapter):
    """
    Logger bound to one pipeline run.

    Every record carries the bound fields (run_id, pipeline_id, ...) next to
    the event's own fields, so per-step events can be grouped by run without
    threading the ids through each call. Event fields win on a name clash.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def bind_run(logger: logging.Logger, run_id: str, **fields: Any) -> RunLogger:
    """Bind run_id and any other run-level fields to a logger."""
    return RunLogger(logger, {"run_id": run_id, **fields})


def log_event(
    logger: Union[logging.Logger, RunLogger],
    event: str,
    level: str = "INFO",
    **kwargs: Any
) -> None:
    """
    Log structured event with additional fields.

    Args:
        logger: Logger instance, or a RunLogger carrying run fields
        event: Event name
        level: Log level
        **kwargs: Additional fields to include in log
    """
    fields: Dict[str, Any] = {"event": event, **kwargs}
    log_func = getattr(logger, level.lower())
    log_func(event, extra=fields)


# Pre-configured loggers
def get_api_logger() -> logging.Logger:
    """Get logger for API routes."""
    from conductor.core.config import get_config
    settings = get_config()
    return get_logger(
        "conductor.api",
        log_level=settings.log_level,
        log_format=settings.log_format
    )


def get_service_logger(service_name: str) -> logging.Logger:
    """Get logger for engine components."""
    from conductor.core.config import get_config
    settings = get_config()
    return get_logger(
        f"conductor.service.{service_name}",
        log_level=settings.log_level,
        log_format=settings.log_format
    )
