"""
dynamic_terminal — multi-line terminal output that repaints only what changed.
"""
from .client import CROSS_RAW, TICK_RAW, DynamicTerminal, WorkerStartError
from .diff import Change, get_changes
from .engine import CursorPosition, RenderEngine
from .frame import SPINNER, Frame, LogicalLine, PhysicalLine, build_frame, normalize_lines
from .protocol import (
    CommandAppend,
    CommandDestroy,
    CommandQueryLines,
    CommandRender,
    CommandStart,
    CommandStop,
    CommandUpdate,
    RenderCommand,
    Response,
    ResponseError,
    ResponseSuccess,
    TerminalOptions,
    parse_command,
)
from .spinner import Spinner, SpinnerTimer, TimerState
from .terminal import ProcessTerminal, Terminal, TerminalSize
from .utils import (
    ERASE_DOWN,
    ERASE_LINE_END,
    RESET_STYLE,
    AnsiCodeTracker,
    cyan,
    green,
    indent,
    red,
    split_styles,
    strip_ansi,
    visible_width,
    wrap_hard,
)
from .worker import EngineWorker

__all__ = [
    # client
    "CROSS_RAW",
    "DynamicTerminal",
    "TICK_RAW",
    "WorkerStartError",
    # diff
    "Change",
    "get_changes",
    # engine
    "CursorPosition",
    "RenderEngine",
    # frame
    "Frame",
    "LogicalLine",
    "PhysicalLine",
    "SPINNER",
    "build_frame",
    "normalize_lines",
    # protocol
    "CommandAppend",
    "CommandDestroy",
    "CommandQueryLines",
    "CommandRender",
    "CommandStart",
    "CommandStop",
    "CommandUpdate",
    "RenderCommand",
    "Response",
    "ResponseError",
    "ResponseSuccess",
    "TerminalOptions",
    "parse_command",
    # spinner
    "Spinner",
    "SpinnerTimer",
    "TimerState",
    # terminal
    "ProcessTerminal",
    "Terminal",
    "TerminalSize",
    # utils
    "AnsiCodeTracker",
    "ERASE_DOWN",
    "ERASE_LINE_END",
    "RESET_STYLE",
    "cyan",
    "green",
    "indent",
    "red",
    "split_styles",
    "strip_ansi",
    "visible_width",
    "wrap_hard",
    # worker
    "EngineWorker",
]
