"""Wire messages exchanged between the supervisor and the worker process.

Messages travel over a ``multiprocessing`` connection as plain dicts. Each
carries a ``kind`` tag so both ends can validate what they receive against a
discriminated schema before acting on it.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class CommandRequest(BaseModel):
    """Request to run one command (supervisor -> worker)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["command"] = "command"
    id: int
    argv: list[str] = Field(min_length=1)
    env: dict[str, str] = Field(default_factory=dict)


class CommandResult(BaseModel):
    """Outcome of one command (worker -> supervisor)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["result"] = "result"
    id: int
    stdout: str
    stderr: str
    code: int | None = None
    signal: str | None = None
    error: str | None = None  # OS error text when the program could not start


Message = Annotated[CommandRequest | CommandResult, Field(discriminator="kind")]

_message_adapter: TypeAdapter[CommandRequest | CommandResult] = TypeAdapter(Message)


def parse_message(raw: Any) -> CommandRequest | CommandResult | None:
    """
    Validate a raw message received from the channel.

    Returns:
        The typed message, or None when ``raw`` does not match any known
        message kind (callers log and drop those).
    """
    if not isinstance(raw, dict):
        return None
    try:
        return _message_adapter.validate_python(raw)
    except ValidationError:
        return None


def parse_result(raw: Any) -> CommandResult | None:
    """Validate a message expected to be a CommandResult."""
    msg = parse_message(raw)
    return msg if isinstance(msg, CommandResult) else None


def parse_request(raw: Any) -> CommandRequest | None:
    """Validate a message expected to be a CommandRequest."""
    msg = parse_message(raw)
    return msg if isinstance(msg, CommandRequest) else None
