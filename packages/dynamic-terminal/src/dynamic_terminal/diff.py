"""
Change calculation between two styled strings.

get_changes() returns the writes needed to turn one rendered row into another.
Escape sequences are stripped and tracked by position, so a character counts
as changed when it differs, when the style in effect there differs, or when
wide characters before it moved it to another column.
Every written fragment starts by re-establishing its own style, so it renders
correctly whatever the terminal state was before.
"""
from __future__ import annotations

from dataclasses import dataclass

from .utils import ERASE_LINE_END, RESET_STYLE, active_styles, char_width, split_styles, visible_width


@dataclass
class Change:
    """A contiguous write at character ``index`` of row ``line``."""

    line: int
    index: int
    text: str


class _Run:
    __slots__ = ("index", "end", "parts", "visible", "char_changed")

    def __init__(self, index: int, prefix: str) -> None:
        self.index = index
        self.end = index
        self.parts: list[str] = [prefix]
        self.visible: list[str] = []
        self.char_changed = False

    def add(self, code: str | None, ch: str, changed: bool) -> None:
        if code is not None:
            self.parts.append(code)
        self.parts.append(ch)
        self.visible.append(ch)
        self.end += 1
        if changed:
            self.char_changed = True

    def is_useful(self) -> bool:
        # Restyling blank content is not worth a write
        return self.char_changed or "".join(self.visible).strip() != ""


def _columns(text: str) -> list[int]:
    """Starting column of every character."""
    columns: list[int] = []
    column = 0
    for ch in text:
        columns.append(column)
        column += char_width(ch)
    return columns


def get_changes(original: str = "", target: str = "", line: int = 0) -> list[Change]:
    """Calculate the changes needed to overwrite ``original`` with ``target``."""
    if original == target:
        return []
    if original == "":
        return [Change(line, 0, target)]
    if target == "":
        return [Change(line, 0, ERASE_LINE_END)]

    old = split_styles(original)
    new = split_styles(target)
    old_text = old.stripped
    new_text = new.stripped
    old_styles = active_styles(old)
    new_styles = active_styles(new)
    old_columns = _columns(old_text)
    new_columns = _columns(new_text)
    new_codes = new.codes
    old_len = len(old_text)
    new_len = len(new_text)

    def char_differs(i: int) -> bool:
        # A character moved to another column by a wider or narrower prefix must be rewritten
        return i >= old_len or new_text[i] != old_text[i] or new_columns[i] != old_columns[i]

    def divergent(i: int) -> bool:
        return char_differs(i) or new_styles[i] != old_styles[i]

    changes: list[Change] = []
    ends: list[int] = []
    run: _Run | None = None

    def close(run: _Run, at: int) -> None:
        # Pick up a style sequence sitting right where the run stops
        trailing = new_codes.get(at)
        if trailing is not None:
            run.parts.append(trailing)
        if run.is_useful():
            changes.append(Change(line, run.index, "".join(run.parts)))
            ends.append(run.end)

    for i in range(new_len):
        if divergent(i):
            if run is None:
                run = _Run(i, RESET_STYLE + new_styles[i])
                run.add(None, new_text[i], char_differs(i))
            else:
                run.add(new_codes.get(i), new_text[i], char_differs(i))
        elif run is not None:
            # A single matching column between two divergent ones stays in the run
            if i + 1 < new_len and divergent(i + 1):
                run.add(new_codes.get(i), new_text[i], False)
            else:
                close(run, i)
                run = None

    if run is not None:
        close(run, new_len)

    # Wide characters make the column count shrink even with more characters
    if new_len < old_len or visible_width(new_text) < visible_width(old_text):
        if changes and ends[-1] == new_len:
            changes[-1].text += ERASE_LINE_END
        else:
            changes.append(Change(line, new_len, ERASE_LINE_END))

    return changes
