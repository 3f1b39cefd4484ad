"""
Structured logging utilities for sheetdesk.

One place configures logging for the CLI, the gateway, and the screens.
Records carry their context through `extra=` (operation, scope, order id...);
the console formatter appends those fields as `key=value` pairs and the JSON
formatter promotes them to top-level keys.

Usage:
    from sheetdesk.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("orders loaded", extra={"scope": "2024-03", "count": 12})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Iterable, Optional

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}

# Chatty third-party loggers held at WARNING; the gateway logs each call itself.
QUIET_LOGGERS = ("httpx", "httpcore")


def _context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields attached through `extra=`, including a nested `extra` dict."""
    fields = {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        fields.update(nested)
    return fields


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as JSON string."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    payload.update(_context_fields(record))
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines with the `extra=` context appended."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _context_fields(record)
        if not fields:
            return line
        context = " ".join(f"{key}={value}" for key, value in fields.items())
        head, _, tail = line.partition("\n")
        return f"{head} | {context}" + (f"\n{tail}" if tail else "")


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    quiet: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Emit one JSON object per record instead of console lines.
    quiet : iterable of str
        Logger names capped at WARNING.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "()": ConsoleFormatter,
                    "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
            "loggers": {name: {"level": "WARNING"} for name in quiet},
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the given name. If name is None, returns the root logger.
    """
    return logging.getLogger(name)


__all__ = ["ConsoleFormatter", "JsonFormatter", "QUIET_LOGGERS", "configure_logging", "get_logger"]
