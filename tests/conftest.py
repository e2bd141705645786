"""
Pytest configuration and shared fixtures.

Provides loggers that capture records, a real worker for integration tests,
and a helper for waiting on callbacks delivered from the reader thread.
"""

import logging
import threading
from collections.abc import Generator
from typing import Any

import pytest

from aspawn import Worker, create_worker
from aspawn.log import Logger

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Add 'unit' marker to tests without other markers."""
    for item in items:
        if not any(
            mark.name in ["integration", "property"] for mark in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Helpers
# =============================================================================


class RecordingHandler(logging.Handler):
    """Log handler keeping every record for assertions."""

    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: int | None = None) -> list[str]:
        return [
            r.getMessage()
            for r in self.records
            if level is None or r.levelno == level
        ]


class Outcome:
    """Collects callback invocations and lets a test wait for them."""

    def __init__(self, expected: int = 1) -> None:
        self.calls: list[tuple[Exception | None, str, str]] = []
        self._expected = expected
        self._cond = threading.Condition()

    def __call__(self, error: Exception | None, stdout: str, stderr: str) -> None:
        with self._cond:
            self.calls.append((error, stdout, stderr))
            self._cond.notify_all()

    def wait(self, timeout: float = 10.0) -> list[tuple[Exception | None, str, str]]:
        with self._cond:
            ok = self._cond.wait_for(
                lambda: len(self.calls) >= self._expected, timeout=timeout
            )
        assert ok, f"expected {self._expected} callback(s), got {len(self.calls)}"
        return self.calls

    @property
    def error(self) -> Any:
        return self.calls[0][0]

    @property
    def stdout(self) -> str:
        return self.calls[0][1]

    @property
    def stderr(self) -> str:
        return self.calls[0][2]


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def log_records() -> RecordingHandler:
    """Handler capturing records emitted through the ``lg`` fixture."""
    return RecordingHandler()


@pytest.fixture
def lg(log_records: RecordingHandler) -> Logger:
    """Debug-level logger recording into ``log_records``."""
    logger = Logger("test.aspawn", logging.DEBUG)
    logger.addHandler(log_records)
    logger.propagate = False
    return logger


@pytest.fixture
def worker(lg: Logger) -> Generator[Worker, None, None]:
    """A running worker, destroyed after the test."""
    w = create_worker(log=lg)
    try:
        yield w
    finally:
        w.destroy()
        w.join(timeout=10.0)


@pytest.fixture
def outcome() -> type[Outcome]:
    """The Outcome class; call it with the number of expected callbacks."""
    return Outcome
