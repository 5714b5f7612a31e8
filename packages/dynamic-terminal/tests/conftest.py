"""Shared fixtures: a recording terminal that also models the screen."""
from __future__ import annotations

import re

import pytest

from dynamic_terminal.terminal import Terminal, TerminalSize
from dynamic_terminal.utils import char_width

_SEQUENCE = re.compile(r"\x1b\[([?0-9;]*)([A-Za-z])")


class MockTerminal(Terminal):
    """
    Records every write and replays it onto a grid of cells.

    Understands exactly the sequences the engine emits: relative cursor
    motion, carriage return, newline (with output post-processing, so it also
    returns the carriage), erase to end of line and erase down. Style
    sequences are ignored. Like a real terminal, wide characters take two
    cells, the cursor never moves past the last column, and a write into the
    last column leaves a pending wrap that the next printable character
    resolves onto the following row.
    """

    def __init__(self, width: int = 80, height: int = 24) -> None:
        self.width = width
        self.height = height
        self._output: list[str] = []
        self.rows: list[list[str]] = [[]]
        self.row = 0
        self.col = 0
        self.pending_wrap = False
        self.cursor_visible = True
        self.raw = False
        self.raw_calls: list[bool] = []

    # Terminal interface

    def write(self, data: str) -> None:
        self._output.append(data)
        self._apply(data)

    def get_size(self) -> TerminalSize:
        return TerminalSize(self.width, self.height)

    def hide_cursor(self) -> None:
        self.cursor_visible = False

    def show_cursor(self) -> None:
        self.cursor_visible = True

    def is_raw(self) -> bool | None:
        return self.raw

    def set_raw_mode(self, enabled: bool) -> None:
        self.raw_calls.append(enabled)
        self.raw = enabled

    # Inspection

    def get_output(self) -> str:
        return "".join(self._output)

    def clear_output(self) -> None:
        self._output.clear()

    @property
    def lines(self) -> list[str]:
        # The second cell of a wide character is stored as ""
        rows = ["".join(r) for r in self.rows]
        while len(rows) > 1 and rows[-1] == "":
            rows.pop()
        return [] if rows == [""] else rows

    # Screen model

    def _line_feed(self) -> None:
        self.row += 1
        self.col = 0
        while len(self.rows) <= self.row:
            self.rows.append([])

    def _put(self, ch: str) -> None:
        w = char_width(ch)
        if w == 0:
            return
        if self.pending_wrap:
            self.pending_wrap = False
            self._line_feed()
        row = self.rows[self.row]
        while len(row) < self.col + w:
            row.append(" ")
        # Overwriting half of a wide character blanks the other half
        if row[self.col] == "" and self.col > 0:
            row[self.col - 1] = " "
        end = self.col + w
        if end < len(row) and row[end] == "":
            row[end] = " "
        row[self.col] = ch
        if w == 2:
            row[self.col + 1] = ""
        if end >= self.width:
            self.col = self.width - 1
            self.pending_wrap = True
        else:
            self.col = end

    def _apply(self, data: str) -> None:
        i = 0
        while i < len(data):
            ch = data[i]
            if ch == "\x1b":
                m = _SEQUENCE.match(data, i)
                if m:
                    self._control(m.group(1), m.group(2))
                    i = m.end()
                    continue
                i += 1
                continue
            if ch == "\n":
                self.pending_wrap = False
                self._line_feed()
            elif ch == "\r":
                self.pending_wrap = False
                self.col = 0
            else:
                self._put(ch)
            i += 1

    def _control(self, params: str, final: str) -> None:
        n = int(params) if params.isdigit() else 1
        if final == "F":
            self.row = max(0, self.row - n)
            self.col = 0
        elif final == "C":
            self.col = min(self.col + n, self.width - 1)
        elif final == "D":
            self.col = max(0, self.col - n)
        elif final == "K":
            del self.rows[self.row][self.col:]
        elif final == "J":
            del self.rows[self.row][self.col:]
            del self.rows[self.row + 1:]
        else:
            return
        self.pending_wrap = False


@pytest.fixture
def terminal() -> MockTerminal:
    return MockTerminal()


@pytest.fixture
def narrow_terminal() -> MockTerminal:
    return MockTerminal(width=10)
