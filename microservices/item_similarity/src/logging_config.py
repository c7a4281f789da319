"""
Structured logging configuration for the item-similarity microservice.

Driver logs are plain text by default and single-line JSON when
``LOG_FORMAT=json``, so cluster runs can be shipped to a log aggregator.
In JSON mode any ``extra={...}`` passed to a log call (for example the
stage name or a row count) becomes a top-level field.

Usage
-----
    >>> from microservices.item_similarity.src.logging_config import configure_logging
    >>> log = configure_logging(__name__)
    >>> log.info("[pipeline] done", extra={"stage": "similarities", "item_pairs": 42})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

SERVICE_NAME = "item-similarity"

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

# py4j logs every gateway round-trip at INFO.
_NOISY_LOGGERS = ("py4j", "py4j.clientserver", "py4j.java_gateway")

# Attributes every LogRecord carries; anything else came in via ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class _JSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in payload:
                payload[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _build_handler(log_format: str, level: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if log_format == "json":
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    return handler


def configure_logging(logger_name: str | None = None) -> logging.Logger:
    """Replace the root logger's handlers with a single stderr handler.

    Safe to call more than once; each call resets the handler.

    Parameters
    ----------
    logger_name : str, optional
        Name of the logger to return; the root logger when omitted.

    Environment variables
    ---------------------
    LOG_FORMAT : str
        ``json`` for structured output, anything else for text.
    LOG_LEVEL : str
        Level name, case-insensitive (default ``INFO``).
    """
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get("LOG_FORMAT", "text").lower()

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(level)
    root.addHandler(_build_handler(log_format, level))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger(logger_name) if logger_name else root
