"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; this module only
configures the root logger once and provides the small helpers used to attach
structured context to DEBUG traces:

- ``configure_logging``: level/format/file handler setup for the CLI.
- ``extra_context``: build the ``extra=`` mapping for a log call.
- ``is_debug_enabled``: cheap guard before building DEBUG payloads.
- ``safe_url``: strip credentials and query strings before logging a URL.
- ``Timer``: context manager measuring elapsed milliseconds.
"""
from __future__ import annotations

import logging
import os
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

# Keys that extra_context may attach to a LogRecord, in display order.
CONTEXT_KEYS = (
    "event",
    "component",
    "action",
    "outcome",
    "target",
    "coordinate",
    "status_code",
    "attempt",
    "duration_ms",
    "count",
    "context",
)


class ContextFormatter(logging.Formatter):
    """Formatter that appends structured context fields when present."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        pairs = []
        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                pairs.append(f"{key}={value}")
        if pairs and record.levelno <= logging.DEBUG:
            return f"{base} [{' '.join(pairs)}]"
        return base


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger for CLI use.

    Args:
        level: Level name; falls back to ``JARDEPS_LOG_LEVEL`` then INFO.
        log_file: Optional path; when given, records also go to this file.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = ContextFormatter(Constants.LOG_FORMAT)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(level_value)
    # Route warnings.warn categories (checksum, conflicts) through logging.
    logging.captureWarnings(True)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Return an ``extra`` mapping with ``None`` values dropped."""
    return {key: value for key, value in kwargs.items() if value is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def safe_url(url: str) -> str:
    """Return ``url`` without userinfo, query string or fragment."""
    try:
        parts = urllib.parse.urlsplit(str(url))
    except ValueError:
        return "<invalid-url>"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urllib.parse.urlunsplit((parts.scheme, host, parts.path, "", ""))


class Timer:
    """Measure wall-clock duration of a block in milliseconds."""

    def __init__(self) -> None:
        self._start: float = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds; still running timers report time so far."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
