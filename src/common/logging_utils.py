"""Centralized logging helpers.

Provides one-time logging configuration, structured ``extra`` payloads for
DEBUG traces, URL sanitizing for log output, a small timing context manager
and ``LogContext``, the logging handle passed explicitly into collaborators
instead of a process-wide verbose switch.
"""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_CONFIGURED = False


def configure_logging(level: Optional[str] = None, logfile: Optional[str] = None) -> None:
    """Configure the root logger once.

    Level precedence: explicit argument, then the GVC_LOG_LEVEL environment
    variable, then INFO.

    Args:
        level: Level name such as "DEBUG".
        logfile: Optional file that receives log records instead of stderr.
    """
    global _CONFIGURED  # pylint: disable=global-statement
    name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    value = getattr(logging, name, logging.INFO)
    root = logging.getLogger()
    if not _CONFIGURED:
        handler: logging.Handler
        if logfile:
            handler = logging.FileHandler(logfile, encoding="utf-8")
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
        _CONFIGURED = True
    root.setLevel(value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from this logger would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records.

    None values are dropped so log sinks only see populated fields.
    """
    return {key: value for key, value in fields.items() if value is not None}


def safe_url(url: str) -> str:
    """Strip credentials, query string and fragment from a URL for logging."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, up to now when still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)


@dataclass
class LogContext:
    """Logging handle threaded through collaborator constructors.

    ``verbose`` promotes ``detail`` messages from DEBUG to INFO so a user can
    follow repository traffic without switching the whole process to DEBUG.
    """

    component: str = "gvc"
    verbose: bool = False
    logger: logging.Logger = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = logging.getLogger(f"gvc.{self.component}")

    def child(self, component: str) -> "LogContext":
        """Derive a context for a sub-component sharing the verbosity."""
        return LogContext(component=component, verbose=self.verbose)

    def detail(self, message: str, *args: Any, **fields: Any) -> None:
        """Log a diagnostic message (INFO when verbose, else DEBUG)."""
        level = logging.INFO if self.verbose else logging.DEBUG
        if self.logger.isEnabledFor(level):
            self.logger.log(
                level, message, *args,
                extra=extra_context(component=self.component, **fields),
            )

    def info(self, message: str, *args: Any) -> None:
        """Log a user-facing progress message."""
        self.logger.info(message, *args)

    def warning(self, message: str, *args: Any) -> None:
        """Log a recoverable problem."""
        self.logger.warning(message, *args)
