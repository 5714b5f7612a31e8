"""
Render engine — owns one terminal session and repaints only what changed.

Each render builds the previous and the next frame at the current width, diffs
them row by row and writes the resulting changes. The cursor is only ever
moved relative to where the engine believes it is; ``move_cursor_to`` is the
single place that moves it, keeping the belief and the real cursor in step.

The engine is not thread safe. Drive it from one execution context, such as
the EngineWorker thread.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable

from .diff import Change, get_changes
from .frame import Content, Frame, LogicalLine, build_frame, has_spinner, normalize_lines
from .protocol import TerminalOptions
from .spinner import Spinner, SpinnerTimer
from .terminal import Terminal
from .utils import ERASE_DOWN, ERASE_LINE_END, cyan, strip_ansi, visible_width

logger = logging.getLogger(__name__)


@dataclass
class CursorPosition:
    line: int = 0
    index: int = 0


class RenderEngine:
    """
    Session state machine: INACTIVE (``active`` False) and ACTIVE.

    ``post_tick`` decides where spinner ticks run. The worker passes a
    function that queues the tick behind pending commands; without one, ticks
    call ``tick()`` straight from the timer thread.
    """

    def __init__(
        self,
        terminal: Terminal,
        post_tick: Callable[[], None] | None = None,
    ) -> None:
        self.terminal = terminal
        self.active = False
        self.destroyed = False
        self.cursor = CursorPosition()

        self._was_raw: bool | None = None
        self._cursor_hidden = False
        self._spinner = Spinner()
        self._spinner_colour: Callable[[str], str] = cyan
        self._repaint_on_resize = False
        self._force_repaint = False
        self._previous_width = terminal.get_size().width
        self._previous_render: list[LogicalLine] = []
        self._next_render: list[LogicalLine] = []
        self._timer = SpinnerTimer(post_tick or self.tick)
        self.last_changes: list[Change] = []

    @property
    def timer(self) -> SpinnerTimer:
        return self._timer

    # ─────────────────────────────────────────────────────────────────────────
    # Session lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def start(self, options: TerminalOptions | None = None) -> bool:
        """Start a new session. Anything written during it may be replaced."""
        if self.active:
            return False
        options = options or TerminalOptions()
        self.active = True
        logger.debug("START new terminal session")

        self._was_raw = self.terminal.is_raw()
        if options.disable_input:
            self.terminal.set_raw_mode(True)

        if options.hide_cursor:
            self._cursor_hidden = True
            self.terminal.hide_cursor()

        self._spinner_colour = options.spinner_colour
        self._timer.interval_ms = options.update_frequency
        self._repaint_on_resize = options.repaint_on_resize
        self._force_repaint = False
        self._previous_width = self.terminal.get_size().width

        self._previous_render = []
        self._next_render = []

        self.terminal.write("\r" + ERASE_LINE_END)
        self.cursor = CursorPosition()

        self._check_spinner()
        return True

    def stop(self, commit: bool = True) -> bool:
        """
        End the session.

        With ``commit`` the output stays on screen and the cursor ends up
        below it; otherwise everything written during the session is erased.
        """
        if not self.active:
            return False
        logger.debug("STOP ending terminal session (commit=%s)", commit)
        self._timer.disarm()

        if commit:
            self.render()
            self.move_cursor_to(len(self._previous_render), 0)
        else:
            self._next_render = []
            width = self.terminal.get_size().width
            self._sync_cursor(self._build(self._previous_render, width), width)
            self.move_cursor_to(0, 0)
            self.terminal.write(ERASE_DOWN)

        self.active = False

        if self._was_raw is not None:
            self.terminal.set_raw_mode(self._was_raw)
        self._was_raw = None

        if self._cursor_hidden:
            self.terminal.show_cursor()
        self._cursor_hidden = False

        self._previous_render = []
        self._next_render = []
        logger.debug("STOP cleanup complete")
        return True

    def destroy(self) -> None:
        """Commit any running session and refuse further work."""
        self.stop(commit=True)
        self.destroyed = True

    # ─────────────────────────────────────────────────────────────────────────
    # Content
    # ─────────────────────────────────────────────────────────────────────────

    def update(self, content: Content | None) -> None:
        """Replace the whole render queue, then render."""
        if not self.active:
            return
        self._next_render = normalize_lines(content)
        logger.debug("UPDATE replaced with %d lines", len(self._next_render))
        self._check_spinner()
        self.render()

    def append(self, content: Content | None) -> None:
        """Add lines to the end of the render queue, then render."""
        if not self.active:
            return
        added = normalize_lines(content)
        self._next_render = self._next_render + added
        logger.debug("APPEND added %d lines", len(added))
        self._check_spinner()
        self.render()

    def get_lines(self) -> list[LogicalLine]:
        """Copies of the lines queued for the next render."""
        return [replace(line) for line in self._next_render]

    def reset_render(self) -> None:
        """Repaint everything on the next render, clearing stray output."""
        self._force_repaint = True

    def tick(self) -> None:
        """Advance the spinner one frame and render."""
        if not self.active or not self._timer.armed:
            return
        self._spinner.advance()
        self.render()

    # ─────────────────────────────────────────────────────────────────────────
    # Rendering
    # ─────────────────────────────────────────────────────────────────────────

    def render(self) -> None:
        """Bring the screen in line with the render queue."""
        if not self.active:
            return

        width = self.terminal.get_size().width
        previous_lines = self._build(self._previous_render, width)
        next_lines = self._build(self._next_render, width)

        # Wrapping may have changed with the width; the cursor sits at the end
        # of whatever the previous frame looks like now
        self._sync_cursor(previous_lines, width)

        resized = self._repaint_on_resize and width != self._previous_width
        if resized or self._force_repaint:
            self.move_cursor_to(0, 0)
            self.terminal.write(ERASE_DOWN)
            previous_lines = []
            self._force_repaint = False
        self._previous_width = width

        changes = self._compute_changes(previous_lines, next_lines, width)
        self.last_changes = changes

        for change in changes:
            row = strip_ansi(next_lines[change.line].text) if change.line < len(next_lines) else ""
            self.move_cursor_to(change.line, visible_width(row[:change.index]))
            self.terminal.write(change.text)
            self.cursor.index += visible_width(change.text)
            if self.cursor.index >= width:
                # A write reaching the right margin leaves the terminal waiting to wrap
                self.terminal.write("\r")
                self.cursor.index = 0

        self._sync_cursor(next_lines, width, move=True)

        # Indentation is already part of the text
        self._previous_render = [LogicalLine(line.text, 0) for line in next_lines]

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "RENDER %d -> %d rows, %d changes: %r",
                len(previous_lines), len(next_lines), len(changes), changes,
            )

    def _build(self, lines: list[LogicalLine], width: int | None = None) -> Frame:
        if width is None:
            width = self.terminal.get_size().width
        return build_frame(lines, width, self._spinner_colour(self._spinner.glyph))

    @staticmethod
    def _compute_changes(previous_lines: Frame, next_lines: Frame, width: int) -> list[Change]:
        changes: list[Change] = []
        for line_number, next_line in enumerate(next_lines):
            if next_line.force:
                erase = ERASE_LINE_END if visible_width(next_line.text) < width else ""
                changes.append(Change(line_number, 0, next_line.text + erase))
                continue
            previous = previous_lines[line_number].text if line_number < len(previous_lines) else ""
            changes.extend(get_changes(previous, next_line.text, line_number))

        # Trailing rows of the previous frame are erased from the end of the new one
        if len(previous_lines) > len(next_lines):
            if next_lines:
                last = len(next_lines) - 1
                text = next_lines[last].text
                if visible_width(text) >= width:
                    # Erasing from the last column would take its character with it
                    changes.append(Change(last + 1, 0, ERASE_DOWN))
                else:
                    changes.append(Change(last, len(strip_ansi(text)), ERASE_DOWN))
            else:
                changes.append(Change(0, 0, ERASE_DOWN))
        return changes

    # ─────────────────────────────────────────────────────────────────────────
    # Cursor
    # ─────────────────────────────────────────────────────────────────────────

    def _sync_cursor(self, frame: Frame, width: int, move: bool = False) -> None:
        """
        Point the cursor (belief, or real cursor with ``move``) at the end of frame.

        A full-width row ends in its last column; the terminal never puts the
        cursor past the right margin.
        """
        line = max(0, len(frame) - 1)
        index = min(visible_width(frame[-1].text), max(0, width - 1)) if frame else 0
        if move:
            self.move_cursor_to(line, index)
        else:
            self.cursor = CursorPosition(line, index)

    def move_cursor_to(self, line: int, index: int) -> None:
        """Move the cursor to a row and column relative to the session start."""
        cursor = self.cursor
        if line < cursor.line:
            self.terminal.write(f"\x1b[{cursor.line - line}F")
            cursor.line = line
            cursor.index = 0
        elif line > cursor.line:
            self.terminal.write("\n" * (line - cursor.line))
            cursor.line = line
            cursor.index = 0

        if index > cursor.index:
            self.terminal.write(f"\x1b[{index - cursor.index}C")
            cursor.index = index
        elif index < cursor.index:
            if index == 0:
                self.terminal.write("\r")
            else:
                self.terminal.write(f"\x1b[{cursor.index - index}D")
            cursor.index = index

    # ─────────────────────────────────────────────────────────────────────────
    # Spinner
    # ─────────────────────────────────────────────────────────────────────────

    def _check_spinner(self) -> None:
        # Eligibility is only re-derived when content changes, not per render
        if not self.active:
            return
        if has_spinner(self._next_render):
            if self._timer.arm():
                logger.debug("TIMER spinner present, starting timer")
        elif self._timer.disarm():
            logger.debug("TIMER no spinner left, stopping timer")
