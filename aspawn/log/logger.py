"""
Logger class for aspawn.

Extends the standard Python logger with pre-populated extra fields, a TRACE
level below DEBUG, and a hard "disabled" switch (level False).
"""

import logging
from typing import Any

from .constants import LogConstants


class Logger(logging.Logger):
    """
    Enhanced logger with structured extra fields.

    Every record carries the merged ``extra`` dict as the ``aspawn_extra``
    attribute so LogFormatter can render it as ``key=value`` pairs.
    """

    def __init__(
        self,
        name: str,
        level: int | bool = logging.INFO,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the logger.

        Args:
            name: Logger name
            level: Numeric level, or False to disable all output
            extra: Pre-populated extra fields included in every record
        """
        if level is False:
            super().__init__(name, logging.CRITICAL + 1)
            self._logging_disabled = True
        else:
            super().__init__(name, level)
            self._logging_disabled = False
        self._extra = extra or {}

    @property
    def disabled(self) -> bool:
        """Check if logging is disabled."""
        return self._logging_disabled

    @disabled.setter
    def disabled(self, value: bool) -> None:
        self._logging_disabled = value

    @property
    def extra(self) -> dict[str, Any]:
        """Fields attached to every record emitted by this logger."""
        return self._extra

    def makeRecord(  # type: ignore[override]
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: object,
        args: Any,
        exc_info: Any,
        func: str | None = None,
        extra: dict[str, Any] | None = None,
        sinfo: str | None = None,
    ) -> logging.LogRecord:
        """Create log record with merged extra fields attached."""
        merged = self._extra.copy()
        if extra:
            merged.update(extra)
        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func, None, sinfo
        )
        record.aspawn_extra = merged
        return record

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a TRACE level message."""
        level = LogConstants.CUSTOM_LEVELS["TRACE"]
        if self.isEnabledFor(level):
            self._log(level, msg, args, **kwargs)

    def _log(self, level: int, msg: object, args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        if self._logging_disabled:
            return
        super()._log(level, msg, args, **kwargs)
