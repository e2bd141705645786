"""Worker process runtime.

Runs inside the subordinate process started by the supervisor. Receives
CommandRequest messages over the connection, runs each one as its own
subprocess on an asyncio loop, and reports exactly one CommandResult per
request. Commands run concurrently and complete in any order.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from multiprocessing.connection import Connection
from typing import Any

from .log import create_lg
from .protocol import CommandRequest, CommandResult, parse_request


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"SIG{signum}"


async def run_command(request: CommandRequest) -> CommandResult:
    """
    Run one command and capture its output.

    The first argv element is the program, looked up on the PATH of the
    command's own environment. Output is decoded as UTF-8, undecodable bytes
    replaced.

    Returns:
        CommandResult with ``code`` set on normal exit, ``signal`` set when
        the process was killed by a signal, or ``error`` set when the program
        could not be started.
    """
    argv = request.argv
    try:
        proc = await asyncio.create_subprocess_exec(
            argv[0],
            *argv[1:],
            env=request.env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return CommandResult(id=request.id, stdout="", stderr="", error=str(e))

    try:
        out, err = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
        raise
    stdout = (out or b"").decode("utf-8", errors="replace")
    stderr = (err or b"").decode("utf-8", errors="replace")

    rc = proc.returncode
    if rc is not None and rc < 0:
        return CommandResult(
            id=request.id, stdout=stdout, stderr=stderr, signal=_signal_name(-rc)
        )
    return CommandResult(id=request.id, stdout=stdout, stderr=stderr, code=rc)


class WorkerRuntime:
    """
    Request loop of the worker process.

    Keeps an in-flight table of requests, used only to reject a duplicate id.
    Has no notion of restarts or of what ids mean beyond echoing them back.
    """

    def __init__(self, conn: Connection, lg: logging.Logger) -> None:
        self._conn = conn
        self._lg = lg
        self._inflight: dict[int, CommandRequest] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed: asyncio.Future[None] | None = None

    @property
    def inflight_count(self) -> int:
        """Number of commands currently running."""
        return len(self._inflight)

    async def serve(self) -> None:
        """Serve requests until the host closes its end of the connection."""
        loop = asyncio.get_running_loop()
        self._closed = loop.create_future()
        fd = self._conn.fileno()
        loop.add_reader(fd, self._on_readable)
        try:
            loop.add_signal_handler(signal.SIGINT, self._on_interrupt)
            interrupts = True
        except (NotImplementedError, RuntimeError, ValueError):
            interrupts = False

        try:
            await self._closed
        finally:
            loop.remove_reader(fd)
            if interrupts:
                loop.remove_signal_handler(signal.SIGINT)
            for task in list(self._tasks):
                task.cancel()
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)

    def _on_interrupt(self) -> None:
        # Terminal interrupts reach the whole process group; the host decides
        # when this process goes away.
        self._lg.debug("ignoring SIGINT")

    def _on_readable(self) -> None:
        try:
            while self._conn.poll():
                self.handle(self._conn.recv())
        except (EOFError, OSError):
            self._lg.debug(
                "host connection closed", extra={"inflight": len(self._inflight)}
            )
            self._close()

    def _close(self) -> None:
        if self._closed is not None and not self._closed.done():
            self._closed.set_result(None)

    def handle(self, raw: Any) -> None:
        """Validate one incoming message and start executing it."""
        request = parse_request(raw)
        if request is None:
            self._lg.warning("unrecognized host message", extra={"raw": raw})
            return

        if request.id in self._inflight:
            self._lg.warning("duplicate command id", extra={"id": request.id})
            return

        self._inflight[request.id] = request
        self._lg.debug("command received", extra={"id": request.id})
        task = asyncio.get_running_loop().create_task(self._execute(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, request: CommandRequest) -> None:
        try:
            result = await run_command(request)
        finally:
            self._inflight.pop(request.id, None)
        self._send(result)

    def _send(self, result: CommandResult) -> None:
        try:
            self._conn.send(result.model_dump())
        except (BrokenPipeError, OSError) as e:
            self._lg.warning(
                "failed to send result", extra={"id": result.id, "exception": e}
            )
            self._close()


def run_worker(conn: Connection, log_level: str = "info") -> None:
    """
    Entry point of the worker process.

    Args:
        conn: Worker end of the duplex pipe shared with the supervisor
        log_level: Log level for the worker's own logger
    """
    lg = create_lg("aspawn.worker", log_level)
    lg.debug("worker process started", extra={"pid": os.getpid()})
    try:
        asyncio.run(WorkerRuntime(conn, lg).serve())
    finally:
        conn.close()
    lg.debug("worker process exiting", extra={"pid": os.getpid()})
