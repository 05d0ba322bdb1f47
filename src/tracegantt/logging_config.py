"""Logging configuration for tracegantt."""
from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "context"):
            log_data["context"] = record.context

        return json.dumps(log_data)


def build_logging_config(
    log_level: str,
    log_file: str | None = None,
    fmt: str = "text",
) -> dict[str, Any]:
    """Build a dictConfig mapping; console always, rotating file when requested."""
    formatter = "json" if fmt == "json" else "text"
    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "stream": "ext://sys.stderr",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "formatter": "json",
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "tracegantt.logging_config.JSONFormatter",
            },
            "text": {
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
            },
        },
        "handlers": handlers,
        "loggers": {
            "tracegantt": {
                "level": log_level.upper(),
                "handlers": list(handlers),
                "propagate": False,
            },
        },
    }


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    fmt: str = "text",
) -> None:
    """
    Setup logging for the tracegantt package.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Defaults to TRACEGANTT_LOG_LEVEL env var or WARNING.
        log_file: Optional path to a rotating JSON log file.
        fmt: Console format, "text" or "json".
    """
    if log_level is None:
        log_level = os.getenv("TRACEGANTT_LOG_LEVEL", "WARNING")

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_level, log_file, fmt))
