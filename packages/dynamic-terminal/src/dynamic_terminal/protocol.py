"""
Command protocol between a caller and the engine worker.

Commands travel to the worker's inbox; each carries an ``id`` that the
matching response echoes back.
"""
from __future__ import annotations

from typing import Annotated, Any, Callable, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from .config import get_update_frequency_ms
from .frame import LogicalLine
from .utils import cyan


# ============================================================================
# Session options
# ============================================================================

class TerminalOptions(BaseModel):
    disable_input: bool = False
    hide_cursor: bool = True
    spinner_colour: Callable[[str], str] = cyan
    update_frequency: int = Field(default_factory=get_update_frequency_ms, gt=0)
    repaint_on_resize: bool = False


# ============================================================================
# Commands
# ============================================================================

class CommandStart(BaseModel):
    type: Literal["start"] = "start"
    id: str | None = None
    options: TerminalOptions = Field(default_factory=TerminalOptions)


class CommandStop(BaseModel):
    type: Literal["stop"] = "stop"
    id: str | None = None
    commit: bool = True


class CommandDestroy(BaseModel):
    type: Literal["destroy"] = "destroy"
    id: str | None = None


class CommandUpdate(BaseModel):
    type: Literal["update"] = "update"
    id: str | None = None
    lines: list[LogicalLine] = Field(default_factory=list)


class CommandAppend(BaseModel):
    type: Literal["append"] = "append"
    id: str | None = None
    lines: list[LogicalLine] = Field(default_factory=list)


class CommandRender(BaseModel):
    type: Literal["render"] = "render"
    id: str | None = None
    force: bool = False


class CommandQueryLines(BaseModel):
    type: Literal["query_lines"] = "query_lines"
    id: str | None = None


RenderCommand = Annotated[
    Union[
        CommandStart,
        CommandStop,
        CommandDestroy,
        CommandUpdate,
        CommandAppend,
        CommandRender,
        CommandQueryLines,
    ],
    Field(discriminator="type"),
]

_command_adapter: TypeAdapter[RenderCommand] = TypeAdapter(RenderCommand)


def parse_command(data: dict[str, Any]) -> RenderCommand:
    """Validate a raw mapping into a command. Raises pydantic.ValidationError."""
    return _command_adapter.validate_python(data)


# ============================================================================
# Responses
# ============================================================================

class ResponseBase(BaseModel):
    type: Literal["response"] = "response"
    id: str | None = None
    command: str
    success: bool


class ResponseSuccess(ResponseBase):
    success: Literal[True] = True
    data: Any = None


class ResponseError(ResponseBase):
    success: Literal[False] = False
    error: str


Response = Union[ResponseSuccess, ResponseError]
