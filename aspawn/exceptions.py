"""
Exception hierarchy for aspawn.

Errors fall into four groups:

- Argument and precondition errors are raised synchronously by the public API
  (``create_worker``, ``Worker.submit``) and never reach a callback.
- Execution errors (``CommandError`` and subclasses) describe how a single
  command failed and are delivered only to that command's callback.
- Abort errors (``WorkerAbortedError`` and subclasses) are delivered to every
  callback pending when the worker process goes away.
- ``WorkerCrashError`` is passed to exit handlers when the worker process
  terminates unexpectedly.
"""

from typing import Any


class SpawnError(Exception):
    """
    Base exception for all aspawn errors.

    Example:
        try:
            worker.submit(argv, callback)
        except SpawnError as e:
            lg.error(f"submit failed: {e}")
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ArgumentError(SpawnError, ValueError):
    """Invalid argument passed to the public API."""

    pass


class ConfigError(SpawnError):
    """
    Configuration-related errors.

    Examples:
        - Config file not found or too large
        - Invalid YAML syntax
        - Invalid configuration value type
    """

    pass


class WorkerNotRunningError(SpawnError, RuntimeError):
    """Command submitted while no worker process handle exists."""

    def __init__(self, message: str = "worker process is not running", **context: Any):
        super().__init__(message, **context)


class CommandError(SpawnError):
    """
    A command ran (or tried to run) and did not succeed.

    Used directly when the failure cannot be classified as an exit status or a
    signal, e.g. when the program could not be executed at all.
    """

    code: int | None = None
    signal: str | None = None


class ExitStatusError(CommandError):
    """Command exited with a nonzero status."""

    def __init__(self, code: int) -> None:
        super().__init__(f"child exited with status {code}")
        self.code = code


class SignalError(CommandError):
    """Command was terminated by a signal."""

    def __init__(self, signal: str) -> None:
        super().__init__(f"child killed by signal {signal}")
        self.signal = signal


class WorkerAbortedError(SpawnError):
    """Command aborted because the worker process went away."""

    pass


class WorkerExitedError(WorkerAbortedError):
    """Worker process exited while the command was pending."""

    def __init__(self, message: str = "worker process exited unexpectedly") -> None:
        super().__init__(message)


class WorkerDestroyedError(WorkerAbortedError):
    """Worker was destroyed while the command was pending."""

    def __init__(self, message: str = "worker process was destroyed") -> None:
        super().__init__(message)


class WorkerCrashError(SpawnError):
    """
    Worker process terminated without being destroyed.

    Carries whichever of exit code or signal name applies.
    """

    def __init__(self, code: int | None = None, signal: str | None = None) -> None:
        if code is not None:
            cause = f"code {code}"
        elif signal is not None:
            cause = f"signal {signal}"
        else:
            cause = "unknown cause"
        super().__init__(f"worker process unexpectedly exited with {cause}")
        self.code = code
        self.signal = signal
