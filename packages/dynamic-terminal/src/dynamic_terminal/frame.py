"""
Logical lines, physical rows and frame building.

Callers hand over LogicalLine objects (or strings) and may keep mutating them;
normalize_lines() copies them so the engine works from a snapshot taken at the
call boundary. build_frame() turns a snapshot into the rows that end up on
screen for a given width.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Union

from .utils import indent, wrap_hard

SPINNER = "_*_"


@dataclass
class LogicalLine:
    """
    One caller-owned line of output.

    ``text`` may contain newlines (split on ingestion), style sequences and the
    SPINNER placeholder. ``force`` rewrites the whole row on every render
    instead of diffing it.
    """

    text: str = ""
    indent: int = 0
    force: bool = False


@dataclass(frozen=True)
class PhysicalLine:
    text: str
    force: bool = False


Frame = list[PhysicalLine]

LineLike = Union[str, LogicalLine, Mapping]
Content = Union[LineLike, Iterable[LineLike]]


def _split(text: str, indent_by: int = 0, force: bool = False) -> list[LogicalLine]:
    return [LogicalLine(part, indent_by, force) for part in text.split("\n")]


def _from_element(element: object) -> list[LogicalLine]:
    if isinstance(element, str):
        return _split(element)
    if isinstance(element, LogicalLine):
        return _split(element.text, element.indent or 0, bool(element.force))
    if isinstance(element, Mapping) and isinstance(element.get("text"), str):
        return _split(element["text"], element.get("indent") or 0, bool(element.get("force")))
    return []


def normalize_lines(content: Content | None) -> list[LogicalLine]:
    """
    Convert update/append input into fresh LogicalLine objects.

    Accepts a string, a LogicalLine, a mapping with a ``text`` key, or any
    iterable of those. Elements without string text are skipped.
    """
    if content is None:
        return []
    if isinstance(content, (str, LogicalLine, Mapping)):
        return _from_element(content)
    lines: list[LogicalLine] = []
    for element in content:
        lines.extend(_from_element(element))
    return lines


def has_spinner(lines: Iterable[LogicalLine]) -> bool:
    return any(SPINNER in line.text for line in lines)


def build_frame(lines: Iterable[LogicalLine], width: int, spinner_glyph: str = "") -> Frame:
    """
    Render logical lines into physical rows for a terminal ``width`` wide.

    The placeholder is substituted before wrapping so wrapping sees the final
    visual content. Rows are wrapped to leave room for the indentation, so
    every row fits the terminal.
    """
    frame: Frame = []
    for line in lines:
        text = line.text.replace(SPINNER, spinner_glyph)
        indent_by = line.indent or 0
        rows = wrap_hard(text, max(1, width - indent_by))
        force = line.force is True
        for row in indent("\n".join(rows), indent_by).split("\n"):
            frame.append(PhysicalLine(row, force))
    return frame
