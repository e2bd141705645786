"""
Asynchronous command execution through a long-lived worker process.

Example:
    from aspawn import create_worker
    from aspawn.log import create_lg

    worker = create_worker(log=create_lg("myapp", "info"))
    worker.submit(["echo", "hello"], lambda err, out, errout: print(out))
"""

from .config import WorkerConfig, load_config
from .exceptions import (
    ArgumentError,
    CommandError,
    ConfigError,
    ExitStatusError,
    SignalError,
    SpawnError,
    WorkerAbortedError,
    WorkerCrashError,
    WorkerDestroyedError,
    WorkerExitedError,
    WorkerNotRunningError,
)
from .protocol import CommandRequest, CommandResult
from .supervisor import PendingCommand, Worker, WorkerState, create_worker
from .version import __version__, get_build_info

__all__ = [
    # Version
    "__version__",
    "get_build_info",
    # Supervisor
    "create_worker",
    "Worker",
    "WorkerState",
    "PendingCommand",
    # Configuration
    "WorkerConfig",
    "load_config",
    # Wire messages
    "CommandRequest",
    "CommandResult",
    # Exceptions
    "SpawnError",
    "ArgumentError",
    "ConfigError",
    "WorkerNotRunningError",
    "CommandError",
    "ExitStatusError",
    "SignalError",
    "WorkerAbortedError",
    "WorkerExitedError",
    "WorkerDestroyedError",
    "WorkerCrashError",
]
