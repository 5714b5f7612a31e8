"""
Terminal abstraction used by the render engine.

Provides:
- Terminal: abstract base class (interface)
- ProcessTerminal: real terminal on sys.stdin/sys.stdout
"""
from __future__ import annotations

import logging
import os
import sys
from abc import ABC, abstractmethod
from typing import NamedTuple

try:
    import termios
    import tty
except ImportError:  # not available on Windows
    termios = None
    tty = None

from .config import DEFAULT_HEIGHT, DEFAULT_WIDTH, get_write_log_path

logger = logging.getLogger(__name__)


class TerminalSize(NamedTuple):
    width: int
    height: int


# ─────────────────────────────────────────────────────────────────────────────
# Terminal ABC
# ─────────────────────────────────────────────────────────────────────────────

class Terminal(ABC):
    """Minimal output surface the render engine owns during a session."""

    @abstractmethod
    def write(self, data: str) -> None:
        """Write output to the terminal."""

    @abstractmethod
    def get_size(self) -> TerminalSize:
        """Terminal size. Must not fail when the size cannot be detected."""

    @abstractmethod
    def hide_cursor(self) -> None:
        """Hide the cursor."""

    @abstractmethod
    def show_cursor(self) -> None:
        """Show the cursor."""

    @abstractmethod
    def is_raw(self) -> bool | None:
        """Whether input is in raw mode, or None when input is not a terminal."""

    @abstractmethod
    def set_raw_mode(self, enabled: bool) -> None:
        """Enable or disable raw input mode."""


# ─────────────────────────────────────────────────────────────────────────────
# ProcessTerminal
# ─────────────────────────────────────────────────────────────────────────────

class ProcessTerminal(Terminal):
    """
    Real terminal using sys.stdin/sys.stdout.

    Raw mode goes through termios/tty; failures (no tty, non-Unix platform)
    are logged and otherwise ignored.
    """

    def __init__(self) -> None:
        self._write_log_path = get_write_log_path()
        self._old_termios: list | None = None

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        sys.stdout.flush()
        if self._write_log_path:
            try:
                with open(self._write_log_path, "a", encoding="utf-8") as f:
                    f.write(data)
            except OSError:
                logger.debug("Could not append to write log %s", self._write_log_path)

    def get_size(self) -> TerminalSize:
        try:
            size = os.get_terminal_size(sys.stdout.fileno())
            return TerminalSize(size.columns, size.lines)
        except (OSError, ValueError, AttributeError):
            return TerminalSize(
                int(os.environ.get("COLUMNS", DEFAULT_WIDTH)),
                int(os.environ.get("LINES", DEFAULT_HEIGHT)),
            )

    def hide_cursor(self) -> None:
        self.write("\x1b[?25l")

    def show_cursor(self) -> None:
        self.write("\x1b[?25h")

    def is_raw(self) -> bool | None:
        if termios is None:
            return None
        try:
            fd = sys.stdin.fileno()
            if not os.isatty(fd):
                return None
            lflag = termios.tcgetattr(fd)[3]
            return not (lflag & termios.ICANON)
        except (termios.error, OSError, ValueError, AttributeError):
            return None

    def set_raw_mode(self, enabled: bool) -> None:
        if termios is None:
            logger.debug("Raw mode unavailable on %s", sys.platform)
            return
        try:
            fd = sys.stdin.fileno()
            if enabled:
                if self._old_termios is None:
                    self._old_termios = termios.tcgetattr(fd)
                # cbreak keeps output post-processing, so "\n" still returns the carriage
                tty.setcbreak(fd)
            elif self._old_termios is not None:
                termios.tcsetattr(fd, termios.TCSADRAIN, self._old_termios)
                self._old_termios = None
        except (termios.error, OSError, ValueError, AttributeError) as exc:
            logger.debug("Raw mode toggle failed: %s", exc)
