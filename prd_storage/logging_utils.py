"""
Logging helpers for the record stores and the sync coordinator.

Every module logs through the standard library ``logging`` module with a
module-level logger. This module adds:

- ``StructuredJsonFormatter``: one JSON object per line, with record
  context (record_type, record_id, operation, ...) grouped under ``context``
- ``configure_structured_logging``: attach the formatter to a logger
- ``configure_logging_from_environment``: the same, driven by
  PRD_STORAGE_LOG_LEVEL and PRD_STORAGE_LOG_FORMAT (json or text)
- ``StorageLoggerAdapter``: binds fixed context to every message
"""

import json
import logging
import os
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter emitting one object per log line.

    Fields:
    - timestamp: record creation time, ISO 8601 in UTC
    - level, logger, message
    - context: ``extra`` fields of the call, when any
    - exception: formatted traceback, when present
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED and not key.startswith("_")
        }
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = "prd_storage",
    json_output: bool = True,
) -> logging.Logger:
    """
    Route a logger to stdout, replacing handlers it already has.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the package logger)
        json_output: JSON lines when True, plain text otherwise

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = StructuredJsonFormatter() if json_output else logging.Formatter(TEXT_FORMAT)
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def configure_logging_from_environment() -> logging.Logger:
    """Configure the package logger from PRD_STORAGE_LOG_LEVEL / PRD_STORAGE_LOG_FORMAT."""
    level_name = os.environ.get("PRD_STORAGE_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    output = os.environ.get("PRD_STORAGE_LOG_FORMAT", "json").lower()
    return configure_structured_logging(level, "prd_storage", json_output=output != "text")


def get_storage_logger(name: str) -> logging.Logger:
    """Logger named ``prd_storage.{name}``."""
    return logging.getLogger(f"prd_storage.{name}")


class StorageLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter binding fixed context (record_type, endpoint, ...) to a logger.

    Per-call ``extra`` values win over the bound ones; the caller's dict is
    not modified.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs
