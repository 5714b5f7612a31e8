"""
Styled text utilities used by the diff and frame layers.

Provides:
- extract_ansi_code(): read one escape sequence at a position
- split_styles(): strip escape sequences, keeping a position -> sequence map
- strip_ansi() / visible_width(): escape-free text and its column width
- AnsiCodeTracker: track active SGR codes across positions and row breaks
- wrap_hard(): hard column wrap that never trims and keeps styles open
- indent(): prefix non-blank rows with spaces
- cyan() / green() / red(): minimal colour helpers
"""
from __future__ import annotations

import re
import unicodedata
from typing import NamedTuple

from wcwidth import wcwidth

ERASE_LINE_END = "\x1b[K"
ERASE_DOWN = "\x1b[J"
RESET_STYLE = "\x1b[0m"

_CSI_FINAL = re.compile(r"[@-~]")


# ─────────────────────────────────────────────────────────────────────────────
# ANSI code extraction
# ─────────────────────────────────────────────────────────────────────────────

class _AnsiExtract(NamedTuple):
    code: str
    length: int


def extract_ansi_code(s: str, pos: int) -> _AnsiExtract | None:
    """Extract the escape sequence starting at pos. Returns None if there is none."""
    if pos >= len(s) or s[pos] != "\x1b":
        return None
    if pos + 1 >= len(s):
        return None
    next_ch = s[pos + 1]

    # CSI: ESC [ params intermediates final
    if next_ch == "[":
        j = pos + 2
        while j < len(s) and not _CSI_FINAL.match(s[j]):
            j += 1
        if j < len(s):
            return _AnsiExtract(s[pos:j + 1], j + 1 - pos)
        return None

    # OSC / APC: terminated by BEL or ST
    if next_ch in "]_":
        j = pos + 2
        while j < len(s):
            if s[j] == "\x07":
                return _AnsiExtract(s[pos:j + 1], j + 1 - pos)
            if s[j] == "\x1b" and j + 1 < len(s) and s[j + 1] == "\\":
                return _AnsiExtract(s[pos:j + 2], j + 2 - pos)
            j += 1
        return None

    return None


class StyledText(NamedTuple):
    stripped: str
    codes: dict[int, str]


def split_styles(text: str) -> StyledText:
    """
    Strip every escape sequence from text.

    Returns the visible text plus a map from stripped index to the sequence(s)
    found immediately before that character. Sequences sharing a position are
    concatenated in order; trailing sequences map to len(stripped).
    """
    chars: list[str] = []
    codes: dict[int, str] = {}
    i = 0
    n = len(text)
    while i < n:
        ansi = extract_ansi_code(text, i) if text[i] == "\x1b" else None
        if ansi:
            pos = len(chars)
            codes[pos] = codes.get(pos, "") + ansi.code
            i += ansi.length
            continue
        chars.append(text[i])
        i += 1
    return StyledText("".join(chars), codes)


def strip_ansi(text: str) -> str:
    if "\x1b" not in text:
        return text
    return split_styles(text).stripped


# ─────────────────────────────────────────────────────────────────────────────
# Width
# ─────────────────────────────────────────────────────────────────────────────

def char_width(ch: str) -> int:
    """Terminal columns taken by a single character."""
    cp = ord(ch)
    if 0x20 <= cp <= 0x7e:
        return 1
    if unicodedata.category(ch) in ("Mn", "Me", "Cf"):
        return 0
    w = wcwidth(ch)
    return w if w > 0 else 0


def visible_width(s: str) -> int:
    """Column width of s with escape sequences removed."""
    if not s:
        return 0
    clean = strip_ansi(s)
    if clean.isascii() and clean.isprintable():
        return len(clean)
    return sum(char_width(ch) for ch in clean)


# ─────────────────────────────────────────────────────────────────────────────
# ANSI SGR code tracker
# ─────────────────────────────────────────────────────────────────────────────

_SGR = re.compile(r"\x1b\[([\d;]*)m")

# Attribute codes (bold, dim, italic, underline, blink, inverse, hidden,
# strikethrough) and the codes that switch them off again
_ATTRIBUTES = frozenset({1, 2, 3, 4, 5, 7, 8, 9})
_ATTRIBUTE_OFF = {
    22: (1, 2),
    23: (3,),
    24: (4,),
    25: (5,),
    27: (7,),
    28: (8,),
    29: (9,),
}


def _extended_colour_length(params: list[str], i: int) -> int:
    """Parameters taken by a 38/48 colour at i: 3 for 256-colour, 5 for RGB, else 0."""
    mode = params[i + 1] if i + 1 < len(params) else ""
    if mode == "5" and i + 2 < len(params):
        return 3
    if mode == "2" and i + 4 < len(params):
        return 5
    return 0


class AnsiCodeTracker:
    """Active SGR state, so the style in effect can be re-established anywhere."""

    def __init__(self) -> None:
        self._attributes: set[int] = set()
        self._fg: str | None = None
        self._bg: str | None = None

    def clear(self) -> None:
        self._attributes.clear()
        self._fg = None
        self._bg = None

    def process(self, ansi_code: str) -> None:
        """Update state from one escape sequence. Non-SGR sequences are ignored."""
        m = _SGR.fullmatch(ansi_code)
        if not m:
            return
        params = m.group(1).split(";")
        i = 0
        while i < len(params):
            param = params[i]
            code = int(param) if param.isdigit() else 0 if param == "" else -1

            if code in (38, 48):
                length = _extended_colour_length(params, i)
                if length:
                    colour = ";".join(params[i:i + length])
                    if code == 38:
                        self._fg = colour
                    else:
                        self._bg = colour
                    i += length
                    continue

            if code == 0:
                self.clear()
            elif code in _ATTRIBUTES:
                self._attributes.add(code)
            elif code in _ATTRIBUTE_OFF:
                self._attributes.difference_update(_ATTRIBUTE_OFF[code])
            elif code == 39:
                self._fg = None
            elif code == 49:
                self._bg = None
            elif 30 <= code <= 37 or 90 <= code <= 97:
                self._fg = param
            elif 40 <= code <= 47 or 100 <= code <= 107:
                self._bg = param
            i += 1

    def process_all(self, codes: str) -> None:
        """Feed a run of concatenated sequences."""
        i = 0
        while i < len(codes):
            result = extract_ansi_code(codes, i)
            if result:
                self.process(result.code)
                i += result.length
            else:
                i += 1

    def get_active_codes(self) -> str:
        """Return the sequence restoring the current SGR state, or ''."""
        codes = [str(code) for code in sorted(self._attributes)]
        codes.extend(colour for colour in (self._fg, self._bg) if colour)
        if not codes:
            return ""
        return f"\x1b[{';'.join(codes)}m"

    def has_active_codes(self) -> bool:
        return bool(self._attributes or self._fg or self._bg)


def active_styles(styled: StyledText) -> list[str]:
    """
    SGR state in effect at every column of styled.stripped.

    Entries are shared string objects; the tracker is only consulted at the
    positions where the code map has an entry.
    """
    tracker = AnsiCodeTracker()
    active = ""
    result: list[str] = []
    codes = styled.codes
    for i in range(len(styled.stripped)):
        code = codes.get(i)
        if code is not None:
            tracker.process_all(code)
            active = tracker.get_active_codes()
        result.append(active)
    return result


# ─────────────────────────────────────────────────────────────────────────────
# Wrapping
# ─────────────────────────────────────────────────────────────────────────────

def wrap_hard(text: str, width: int) -> list[str]:
    """
    Break text into rows of at most width columns.

    Splits on embedded newlines first. Each row is cut exactly at the column
    limit with no word lookahead and no whitespace trimming. A style still
    open at a break is closed with a reset and re-opened on the next row.
    """
    width = max(1, width)
    rows: list[str] = []
    tracker = AnsiCodeTracker()

    for source in text.split("\n"):
        current = tracker.get_active_codes()
        current_width = 0
        i = 0
        while i < len(source):
            ansi = extract_ansi_code(source, i)
            if ansi:
                current += ansi.code
                tracker.process(ansi.code)
                i += ansi.length
                continue

            ch = source[i]
            w = char_width(ch)
            if current_width + w > width and current_width > 0:
                if tracker.has_active_codes():
                    current += RESET_STYLE
                rows.append(current)
                current = tracker.get_active_codes()
                current_width = 0
            current += ch
            current_width += w
            i += 1
        rows.append(current)

    return rows


def indent(text: str, count: int) -> str:
    """Prefix count spaces to every row of text that is not blank."""
    if count <= 0:
        return text
    pad = " " * count
    return "\n".join(
        pad + row if strip_ansi(row).strip() else row
        for row in text.split("\n")
    )


# ─────────────────────────────────────────────────────────────────────────────
# Colours
# ─────────────────────────────────────────────────────────────────────────────

def cyan(s: str) -> str:
    return f"\x1b[36m{s}\x1b[39m"


def green(s: str) -> str:
    return f"\x1b[32m{s}\x1b[39m"


def red(s: str) -> str:
    return f"\x1b[31m{s}\x1b[39m"
