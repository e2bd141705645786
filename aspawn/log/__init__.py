"""
Logging helpers for aspawn.

Extends Python's standard logging with:
- A custom TRACE level for per-message protocol tracing
- Structured extra fields rendered as ``key=value`` after the message
- Complete logging disable (level=False or level="false")

The supervisor and worker runtime accept any ``logging.Logger``; these helpers
are what the CLI and the worker process use to build one.
"""

import logging
import sys
from typing import TextIO

from .constants import LogConstants
from .exceptions import InvalidLogLevelError
from .formatters import LogFormatter
from .logger import Logger

logging.TRACE = LogConstants.CUSTOM_LEVELS["TRACE"]  # type: ignore[attr-defined]
logging.addLevelName(logging.TRACE, "TRACE")  # type: ignore[attr-defined]
LogConstants.LEVEL_NAMES["trace"] = logging.TRACE  # type: ignore[attr-defined]


def resolve_level(s: str | int | bool) -> int | bool:
    """
    Resolve log level from string, numeric value, or boolean.

    Args:
        s: Log level as string name, numeric value, or False to disable logging

    Returns:
        Numeric log level or False to disable logging

    Raises:
        InvalidLogLevelError: If the log level is invalid
    """
    if isinstance(s, bool):
        return s
    if isinstance(s, int):
        return s
    if str(s).isnumeric():
        return int(s)
    key = str(s).lower()
    if key in LogConstants.LEVEL_NAMES:
        return LogConstants.LEVEL_NAMES[key]
    raise InvalidLogLevelError(s)


def create_lg(
    name: str,
    level: str | int | bool = "info",
    colors: bool | None = None,
    micros: bool = False,
    stream: TextIO | None = None,
) -> Logger:
    """
    Create a logger writing formatted records to a stream.

    The logger is created directly rather than through ``logging.getLogger``
    so repeated calls never share handlers.

    Args:
        name: Logger name
        level: Log level (string, numeric, or False to disable)
        colors: Use ANSI colors; defaults to whether the stream is a TTY
        micros: Show microsecond precision timestamps
        stream: Output stream (default: stderr)

    Returns:
        Configured logger instance

    Example:
        >>> lg = create_lg("aspawn", "debug")
        >>> lg.info("worker started", extra={"pid": 1234})
    """
    stream = stream if stream is not None else sys.stderr
    if colors is None:
        colors = hasattr(stream, "isatty") and stream.isatty()

    lg = Logger(name, resolve_level(level))
    handler = logging.StreamHandler(stream)
    handler.setFormatter(LogFormatter(colors=colors, micros=micros))
    lg.addHandler(handler)
    lg.propagate = False
    return lg


__all__ = [
    "InvalidLogLevelError",
    "LogConstants",
    "LogFormatter",
    "Logger",
    "create_lg",
    "resolve_level",
]
