"""Worker process supervision with auto-restart."""

from __future__ import annotations

import atexit
import logging
import multiprocessing as mp
import os
import signal
import threading
import time
import weakref
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess
from typing import Any

from .config import WorkerConfig
from .exceptions import (
    ArgumentError,
    CommandError,
    ExitStatusError,
    SignalError,
    WorkerCrashError,
    WorkerDestroyedError,
    WorkerExitedError,
    WorkerNotRunningError,
)
from .protocol import CommandRequest, CommandResult, parse_result
from .runtime import run_worker

Callback = Callable[[Exception | None, str, str], Any]
ExitHandler = Callable[[Exception | None], Any]


class WorkerState(str, Enum):
    """Supervisor lifecycle states."""

    STARTING = "starting"  # Constructed, first process not yet started
    RUNNING = "running"  # Process handle assigned
    RESTARTING = "restarting"  # Process exited unexpectedly, restart pending
    TERMINATING = "terminating"  # destroy() called, waiting for exit
    DESTROYED = "destroyed"  # Exited after destroy() (terminal)
    FAILED = "failed"  # Restart limit reached or restart failed (terminal)


@dataclass
class PendingCommand:
    """Supervisor's record of a command awaiting its outcome."""

    command: CommandRequest
    callback: Callback
    started: float = field(default_factory=time.monotonic)


@dataclass
class _WorkerProcess:
    """Handle to one worker process instance and its end of the pipe."""

    process: BaseProcess
    conn: Connection


def _validate_argv(argv: Any) -> list[str]:
    if not isinstance(argv, (list, tuple)) or len(argv) == 0:
        raise ArgumentError('"argv" must be non-empty list of strings')
    for i, arg in enumerate(argv):
        if not isinstance(arg, str):
            raise ArgumentError(f'"argv[{i}]" ({arg!r}) is not a string')
    return list(argv)


def _validate_env(env: Any) -> dict[str, str]:
    if not isinstance(env, Mapping):
        raise ArgumentError('"options.env" must be a mapping')
    copied = {}
    for key, value in env.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ArgumentError(
                f'"options.env" entry {key!r}={value!r} is not a string pair'
            )
        copied[key] = value
    return copied


def classify_result(result: CommandResult) -> Exception | None:
    """
    Map a command result to the error delivered to its callback.

    Exactly one of: None (exit status 0), ExitStatusError, SignalError, or a
    plain CommandError when neither code nor signal is known.
    """
    if result.code == 0:
        return None
    if result.code is not None:
        return ExitStatusError(result.code)
    if result.signal is not None:
        return SignalError(result.signal)
    return CommandError(result.error or "unknown error")


class Worker:
    """
    Runs external commands through one long-lived worker process.

    Every command runs as its own subprocess of the worker process. Results
    come back over a pipe and are matched to callbacks by request id. If the
    worker process dies, pending commands fail and a new worker process is
    started. Use create_worker() rather than constructing this directly.

    Example:
        worker = create_worker(log=lg)

        def done(err, stdout, stderr):
            ...

        worker.submit(["echo", "hello"], done)
        # ... later ...
        worker.destroy()

    Callbacks and exit handlers run on a background reader thread, never while
    internal state is locked, so they may call submit() or destroy().
    """

    def __init__(self, lg: logging.Logger, config: WorkerConfig | None = None) -> None:
        self._lg = lg
        self._config = config or WorkerConfig()
        self._ctx = mp.get_context(self._config.start_method)
        self._lock = threading.Lock()
        # Separate from _lock so a blocked send never stalls result delivery
        self._send_lock = threading.Lock()
        self._terminal = threading.Event()

        self._child: _WorkerProcess | None = None
        self._state = WorkerState.STARTING
        self._destroyed = False
        self._last_id = 0
        self._pending: dict[int, PendingCommand] = {}
        self._exit_handlers: list[ExitHandler] = []
        self._start_count = 0
        self._restart_count = 0

    @property
    def state(self) -> WorkerState:
        """Current lifecycle state."""
        return self._state

    @property
    def pid(self) -> int | None:
        """Process ID of the current worker process, if any."""
        child = self._child
        return child.process.pid if child else None

    @property
    def pending_count(self) -> int:
        """Number of commands awaiting an outcome."""
        return len(self._pending)

    @property
    def start_count(self) -> int:
        """Number of worker processes started, including restarts."""
        return self._start_count

    @property
    def restart_count(self) -> int:
        """Number of restarts after unexpected exits."""
        return self._restart_count

    def on_exit(self, handler: ExitHandler) -> None:
        """
        Register a handler called whenever the worker process exits.

        The handler receives None after a destroy(), or a WorkerCrashError
        describing an unexpected exit (called before the restart).
        """
        if not callable(handler):
            raise ArgumentError('"handler" must be callable')
        with self._lock:
            self._exit_handlers.append(handler)

    def _start(self) -> None:
        """
        Start a new worker process, replacing any existing handle.

        Called once by create_worker() and again for each restart.

        Raises:
            RuntimeError: If a worker process is already running
        """
        with self._lock:
            if self._child is not None:
                raise RuntimeError("worker process already running")

        parent_conn, child_conn = self._ctx.Pipe(duplex=True)
        proc = self._ctx.Process(
            target=run_worker,
            args=(child_conn, self._config.log_level),
            name="aspawn-worker",
            daemon=True,
        )
        self._lg.info("forking worker process")
        proc.start()
        # The worker holds the only copy now; EOF on our end means it exited
        child_conn.close()

        child = _WorkerProcess(process=proc, conn=parent_conn)
        with self._lock:
            self._child = child
            self._start_count += 1
            self._state = WorkerState.RUNNING

        self._lg.debug("worker process started", extra={"pid": proc.pid})
        threading.Thread(
            target=self._read_loop,
            args=(child,),
            name=f"aspawn-reader-{proc.pid}",
            daemon=True,
        ).start()

    def submit(
        self,
        argv: Sequence[str],
        options: Mapping[str, Any] | Callback | None,
        callback: Callback | None = None,
    ) -> int:
        """
        Run a command in the worker process.

        Called as ``submit(argv, options, callback)`` or, without options,
        as ``submit(argv, callback)``.

        Args:
            argv: Program and arguments, non-empty, all strings
            options: Optional mapping; ``options["env"]`` replaces the
                inherited environment
            callback: Called once as ``callback(error, stdout, stderr)``;
                error is None on exit status 0

        Returns:
            Request id assigned to the command

        Raises:
            ArgumentError: If any argument is invalid (callback not called)
            WorkerNotRunningError: If there is no live worker process
        """
        if callback is None and callable(options):
            options, callback = None, options

        argv = _validate_argv(argv)
        if options is not None and not isinstance(options, Mapping):
            raise ArgumentError('"options" must be a mapping')
        if not callable(callback):
            raise ArgumentError('"callback" must be callable')

        srcenv = (options or {}).get("env")
        env = _validate_env(srcenv if srcenv is not None else os.environ)

        with self._lock:
            child = self._child
            if child is None or self._destroyed:
                raise WorkerNotRunningError(state=self._state.value)

            self._last_id += 1
            command = CommandRequest(id=self._last_id, argv=argv, env=env)
            self._pending[command.id] = PendingCommand(command, callback)

        self._lg.debug("issuing command", extra={"id": command.id, "argv": argv})
        with self._send_lock:
            try:
                child.conn.send(command.model_dump())
            except (BrokenPipeError, OSError) as e:
                # The reader sees EOF too and aborts the command on exit
                self._lg.warning(
                    "failed to send command", extra={"id": command.id, "exception": e}
                )

        return command.id

    def destroy(self) -> None:
        """
        Kill the worker process and fail pending commands.

        Idempotent. Pending commands fail with WorkerDestroyedError once the
        process has exited; cleanup happens on the reader thread.
        """
        with self._lock:
            child = self._child
            if child is None or self._destroyed:
                return
            self._destroyed = True
            self._state = WorkerState.TERMINATING

        self._lg.info("destroying", extra={"pid": child.process.pid})
        child.process.kill()

    def join(self, timeout: float | None = None) -> bool:
        """
        Wait until the supervisor reaches a terminal state.

        Returns:
            True if DESTROYED or FAILED was reached within the timeout
        """
        return self._terminal.wait(timeout)

    def __enter__(self) -> Worker:
        return self

    def __exit__(self, *args: object) -> None:
        self.destroy()
        self.join()

    def _read_loop(self, child: _WorkerProcess) -> None:
        """Deliver messages from one worker process until it exits."""
        while True:
            try:
                raw = child.conn.recv()
            except (EOFError, OSError):
                break
            except Exception as e:
                # Stream is out of sync; treat the process as gone
                self._lg.error(
                    "failed to read worker message",
                    extra={"pid": child.process.pid, "exception": e},
                )
                child.process.kill()
                break
            self._on_message(raw)

        child.conn.close()
        child.process.join()
        self._on_exit(child, child.process.exitcode)

    def _on_message(self, raw: Any) -> None:
        """Resolve the pending command a result message refers to."""
        result = parse_result(raw)
        if result is None:
            self._lg.warning("unrecognized worker message", extra={"raw": raw})
            return

        with self._lock:
            entry = self._pending.pop(result.id, None)
        if entry is None:
            self._lg.warning(
                "unknown command in worker message", extra={"id": result.id}
            )
            return

        error = classify_result(result)
        self._lg.debug(
            "command completed",
            extra={
                "id": result.id,
                "code": result.code,
                "signal": result.signal,
                "after": round(time.monotonic() - entry.started, 6),
            },
        )
        self._invoke(entry, error, result.stdout, result.stderr)

    def _on_exit(self, child: _WorkerProcess, exitcode: int | None) -> None:
        """Handle a worker process exit: notify, restart if needed, fail pending."""
        code: int | None = None
        signame: str | None = None
        if exitcode is not None and exitcode < 0:
            try:
                signame = signal.Signals(-exitcode).name
            except ValueError:
                signame = f"SIG{-exitcode}"
        else:
            code = exitcode

        with self._lock:
            if self._child is child:
                self._child = None
            expected = self._destroyed
            aborted = list(self._pending.values())
            self._pending.clear()
            handlers = list(self._exit_handlers)
            if expected:
                self._state = WorkerState.DESTROYED
            else:
                self._state = WorkerState.RESTARTING

        if expected:
            self._lg.info(
                "worker process exited (destroyed)",
                extra={"code": code, "signal": signame},
            )
            self._notify_exit(handlers, None)
            self._terminal.set()
            abort_error: type[Exception] = WorkerDestroyedError
        else:
            crash = WorkerCrashError(code=code, signal=signame)
            self._lg.warning(
                str(crash), extra={"pid": child.process.pid, "pending": len(aborted)}
            )
            self._notify_exit(handlers, crash)
            self._restart()
            abort_error = WorkerExitedError

        for entry in aborted:
            self._lg.debug("command aborted", extra={"id": entry.command.id})
            self._invoke(entry, abort_error(), "", "")

    def _should_restart(self) -> bool:
        """Check if restart should be attempted."""
        if self._config.max_restarts == 0:
            return True  # Unlimited restarts
        return self._restart_count < self._config.max_restarts

    def _restart(self) -> None:
        if not self._should_restart():
            self._lg.error(
                f"max restarts exceeded ({self._config.max_restarts}), giving up"
            )
            self._fail()
            return

        self._restart_count += 1
        self._lg.info(
            "restarting worker process",
            extra={
                "attempt": self._restart_count,
                "delay": self._config.restart_delay,
            },
        )
        if self._config.restart_delay > 0:
            time.sleep(self._config.restart_delay)

        try:
            self._start()
        except Exception as e:
            self._lg.error("failed to restart worker process", extra={"exception": e})
            self._fail()

    def _fail(self) -> None:
        with self._lock:
            self._state = WorkerState.FAILED
        self._terminal.set()

    def _invoke(
        self, entry: PendingCommand, error: Exception | None, stdout: str, stderr: str
    ) -> None:
        try:
            entry.callback(error, stdout, stderr)
        except Exception:
            self._lg.exception(
                "command callback raised", extra={"id": entry.command.id}
            )

    def _notify_exit(self, handlers: list[ExitHandler], error: Exception | None) -> None:
        for handler in handlers:
            try:
                handler(error)
            except Exception:
                self._lg.exception("exit handler raised")


_live_workers: weakref.WeakSet[Worker] = weakref.WeakSet()


@atexit.register
def _destroy_live_workers() -> None:
    # Runs before multiprocessing terminates daemonic children at exit, so
    # those exits are seen as destroys rather than crashes to restart from.
    for worker in list(_live_workers):
        worker.destroy()


def create_worker(
    log: logging.Logger | None = None, config: WorkerConfig | None = None
) -> Worker:
    """
    Create a worker and start its process.

    Returns before the process has confirmed it is running; commands may be
    submitted immediately.

    Args:
        log: Logger used for all supervisor logging (required)
        config: Worker configuration (default: WorkerConfig())

    Raises:
        ArgumentError: If log is missing
    """
    if log is None:
        raise ArgumentError('"log" argument is required')

    worker = Worker(log, config)
    worker._start()
    _live_workers.add(worker)
    return worker
