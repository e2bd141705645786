"""
Log formatter for console output.

Renders records as ``[time] [L] message`` followed by the record's extra
fields, padded to a fixed column so that fields line up across lines.
"""

import logging
from typing import Any

from .constants import LogConstants

_COLORS: dict[int, str] = {
    LogConstants.CUSTOM_LEVELS["TRACE"]: "\x1b[38;5;244m",
    logging.DEBUG: "\x1b[38;5;32m",
    logging.INFO: "\x1b[36m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[35m",
}


def _format_extra(extra: dict[str, Any] | None) -> str:
    """Format extra fields as sorted ``key=value`` pairs."""
    if not extra:
        return ""
    parts = []
    for key in sorted(extra):
        value = extra[key]
        if isinstance(value, BaseException):
            value = f"{value.__class__.__name__}({value})"
        parts.append(f"{key}={value}")
    return " ".join(parts)


class LogFormatter(logging.Formatter):
    """Console formatter with aligned extra fields and optional colors."""

    def __init__(self, colors: bool = False, micros: bool = False) -> None:
        super().__init__(LogConstants.DEFAULT_FORMAT, LogConstants.DATE_FORMAT)
        self._colors = colors
        self._micros = micros

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        if self._micros:
            return f"{base}.{int(record.msecs * 1000):06d}"
        return f"{base},{int(record.msecs):03d}"

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra = _format_extra(getattr(record, "aspawn_extra", None))

        # Exception text (if any) follows the first line, keep fields on it
        head, sep, tail = line.partition("\n")
        if extra:
            pad = max(1, LogConstants.DEFAULT_RULE_WIDTH - len(head))
            head = f"{head}{' ' * pad}{extra}"
        head = f"{head} [{record.process}] [{record.name}]"

        if self._colors:
            color = _COLORS.get(record.levelno)
            if color:
                head = f"{color}{head}{LogConstants.RESET}"
        return head + sep + tail
