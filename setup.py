"""setup.py hook that records git build info into aspawn/_build_info.py.

pyproject.toml carries the project metadata; this only swaps in a build_py
command so ``aspawn version`` can report the commit an install was built from.
The source tree itself is never modified.
"""

import subprocess
import sys
from datetime import UTC, datetime
from pathlib import Path

from setuptools import setup
from setuptools.command.build_py import build_py

PACKAGE = "aspawn"

_TEMPLATE = '''\
"""Build information - auto-generated during install, do not edit."""

COMMIT_HASH = "{full}"
COMMIT_SHORT = "{short}"
COMMIT_MESSAGE = "{message}"
BUILD_TIME = "{built}"
MODIFIED = {modified}
'''


def _git(*args: str) -> str | None:
    """Run a git command in the source tree, None on any failure."""
    try:
        proc = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=5,
            cwd=Path(__file__).parent,
        )
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return None
    return proc.stdout.strip() if proc.returncode == 0 else None


def _write_build_info(package_dir: Path) -> None:
    full = _git("rev-parse", "HEAD")
    if not full:
        print(f"{PACKAGE}: not a git checkout, no build info", file=sys.stderr)
        return

    message = (_git("log", "-1", "--format=%s") or "").replace("\\", "\\\\")
    status = _git("status", "--porcelain")
    (package_dir / "_build_info.py").write_text(
        _TEMPLATE.format(
            full=full,
            short=full[:7],
            message=message.replace('"', '\\"'),
            built=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            modified=bool(status),
        )
    )


class BuildPyWithBuildInfo(build_py):
    """build_py that writes _build_info.py into the build directory."""

    def run(self):
        super().run()
        target = Path(self.build_lib) / PACKAGE if self.build_lib else None
        if target is not None and target.is_dir():
            _write_build_info(target)


setup(cmdclass={"build_py": BuildPyWithBuildInfo})
