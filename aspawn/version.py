"""Version and build information."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Any

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("aspawn")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"


def get_build_info() -> dict[str, Any]:
    """
    Get build info recorded by setup.py at install time.

    Returns:
        Dict with commit, full, message, time and modified keys; values are
        None when the package was not built from a git checkout.
    """
    try:
        from aspawn import _build_info  # type: ignore[attr-defined]

        return {
            "commit": getattr(_build_info, "COMMIT_SHORT", "") or None,
            "full": getattr(_build_info, "COMMIT_HASH", "") or None,
            "message": getattr(_build_info, "COMMIT_MESSAGE", "") or None,
            "time": getattr(_build_info, "BUILD_TIME", "") or None,
            "modified": getattr(_build_info, "MODIFIED", None),
        }
    except ImportError:
        return {
            "commit": None,
            "full": None,
            "message": None,
            "time": None,
            "modified": None,
        }
