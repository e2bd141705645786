"""
aspawn CLI - run commands through a worker process.

Usage:
    aspawn run -- echo hello
    aspawn run --clean-env --env USER=someone -- env
    aspawn run --log-level debug -- sleep 1
    aspawn version --json
"""

from __future__ import annotations

import argparse
import json
import os
import signal
import sys
import threading
from collections.abc import Sequence
from typing import Any

from .config import load_config
from .exceptions import ConfigError, ExitStatusError, SignalError, SpawnError
from .log import create_lg
from .supervisor import create_worker
from .version import __version__, get_build_info


def _parse_env(pairs: list[str], clean: bool) -> dict[str, str] | None:
    if not pairs and not clean:
        return None
    env = {} if clean else dict(os.environ)
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ConfigError("--env expects KEY=VALUE", value=pair)
        env[key] = value
    return env


def _exit_status(error: Exception | None) -> int:
    """Shell-style exit status for a command outcome."""
    if error is None:
        return 0
    if isinstance(error, ExitStatusError):
        return error.code if error.code is not None else 1
    if isinstance(error, SignalError) and error.signal:
        try:
            return 128 + signal.Signals[error.signal].value
        except KeyError:
            return 1
    return 1


def _cmd_run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    lg = create_lg("aspawn", args.log_level)
    env = _parse_env(args.env, args.clean_env)

    done = threading.Event()
    outcome: dict[str, Any] = {}

    def on_done(error: Exception | None, stdout: str, stderr: str) -> None:
        outcome.update(error=error, stdout=stdout, stderr=stderr)
        done.set()

    with create_worker(log=lg, config=config) as worker:
        worker.submit(args.argv, {"env": env} if env is not None else None, on_done)
        done.wait()

    sys.stdout.write(outcome["stdout"])
    sys.stderr.write(outcome["stderr"])
    error = outcome["error"]
    if error is not None:
        lg.info("command failed", extra={"error": error})
    return _exit_status(error)


def _cmd_version(args: argparse.Namespace) -> int:
    info = {"version": __version__, **get_build_info()}
    if args.json:
        print(json.dumps(info, indent=2))
    else:
        commit = info["commit"] or "unknown"
        print(f"aspawn {__version__} (commit {commit})")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aspawn", description="Run commands through a worker process"
    )
    parser.add_argument("-v", action="version", version=f"aspawn {__version__}")
    parser.add_argument("--config", help="YAML config file with a 'worker' section")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run one command and relay its output")
    run.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="set an environment variable for the command (repeatable)",
    )
    run.add_argument(
        "--clean-env",
        action="store_true",
        help="start from an empty environment instead of inheriting ours",
    )
    run.add_argument(
        "--log-level", default="warning", help="log level (default: warning)"
    )
    run.add_argument("argv", nargs="+", help="program and arguments")
    run.set_defaults(func=_cmd_run)

    version = sub.add_parser("version", help="show version and build info")
    version.add_argument("--json", action="store_true", help="output as JSON")
    version.set_defaults(func=_cmd_version)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the aspawn CLI."""
    args = _build_parser().parse_args(argv)
    try:
        return int(args.func(args))
    except SpawnError as e:
        print(f"aspawn: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
