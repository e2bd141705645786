"""Exceptions raised by the logging helpers."""

from typing import Any

from ..exceptions import ConfigError


class InvalidLogLevelError(ConfigError):
    """Raised when an invalid log level is specified."""

    def __init__(self, level: Any) -> None:
        super().__init__(f"Invalid log level: {level}")
        self.level = level
