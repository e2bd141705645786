"""
Worker configuration.

Configuration lives in a ``worker:`` section of a YAML file, and any field can
be overridden from the environment.

Environment Variable Override Format:
    ASPAWN_<FIELD>=value

Examples:
    ASPAWN_MAX_RESTARTS=3
    ASPAWN_LOG_LEVEL=debug
"""

from __future__ import annotations

import dataclasses
import multiprocessing as mp
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigError

ENV_PREFIX = "ASPAWN_"
CONFIG_SECTION = "worker"
MAX_CONFIG_SIZE_BYTES = 1024 * 1024


@dataclass
class WorkerConfig:
    """
    Worker supervisor configuration.

    Attributes:
        start_method: multiprocessing start method for the worker process
            (default: "spawn"). The supervisor runs reader threads, so
            "fork" is discouraged.
        max_restarts: Max restarts after unexpected exits before giving up
            (default: 0). Set to 0 for unlimited restarts.
        restart_delay: Seconds to wait before restarting (default: 0.0).
        log_level: Log level used inside the worker process (default: "info").
    """

    start_method: str = "spawn"
    max_restarts: int = 0
    restart_delay: float = 0.0
    log_level: str = "info"

    def __post_init__(self) -> None:
        if self.start_method not in mp.get_all_start_methods():
            raise ConfigError(
                "unsupported start method", start_method=self.start_method
            )
        if self.max_restarts < 0:
            raise ConfigError(
                "max_restarts must be >= 0", max_restarts=self.max_restarts
            )
        if self.restart_delay < 0:
            raise ConfigError(
                "restart_delay must be >= 0", restart_delay=self.restart_delay
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorkerConfig:
        """
        Build a config from a mapping.

        Raises:
            ConfigError: On unknown keys or values of the wrong type
        """
        data = dict(data or {})
        known = {f.name: f for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError("unknown worker config keys", keys=unknown)

        values: dict[str, Any] = {}
        for name, value in data.items():
            values[name] = _coerce(name, value, type(getattr(cls, name)))
        return cls(**values)


def _coerce(name: str, value: Any, typ: type) -> Any:
    """Convert a YAML or environment value to the field's type."""
    if isinstance(value, typ) and not isinstance(value, bool):
        return value
    try:
        if typ is int:
            return int(value)
        if typ is float:
            return float(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError("invalid config value", key=name, value=value) from e


def _env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect ASPAWN_<FIELD> overrides for known fields."""
    overrides = {}
    for f in dataclasses.fields(WorkerConfig):
        key = ENV_PREFIX + f.name.upper()
        if key in environ:
            overrides[f.name] = environ[key]
    return overrides


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read the worker section of a YAML config file."""
    if not path.is_file():
        raise ConfigError("config file not found", path=str(path))

    size = path.stat().st_size
    if size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigError("config file too large", path=str(path), size=size)

    with open(path) as f:
        try:
            doc = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError("invalid YAML", path=str(path)) from e

    if not isinstance(doc, dict):
        raise ConfigError("config root must be a mapping", path=str(path))
    section = doc.get(CONFIG_SECTION) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{CONFIG_SECTION}' must be a mapping", path=str(path))
    return section


def load_config(
    path: str | Path | None = None,
    enable_env_overrides: bool = True,
    environ: Mapping[str, str] | None = None,
) -> WorkerConfig:
    """
    Load worker configuration.

    Args:
        path: YAML file with an optional ``worker:`` section. If None, only
            defaults and environment overrides apply.
        enable_env_overrides: Apply ASPAWN_* environment variables on top
        environ: Environment to read overrides from (default: os.environ)

    Returns:
        WorkerConfig instance

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    data = _read_yaml(Path(path)) if path is not None else {}
    if enable_env_overrides:
        data.update(_env_overrides(environ if environ is not None else os.environ))
    return WorkerConfig.from_dict(data)
