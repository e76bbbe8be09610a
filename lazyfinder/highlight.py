"""Terminal-safe presentation of match lines.

Escapes control bytes, clips lines to the terminal width, and colours the
candidate text with Pygments using a lexer picked from the source file name.
"""

from __future__ import annotations

import functools
import re

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .width import char_display_width

DEFAULT_STYLE = "monokai"

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_WHITESPACE_TO_SPACE = str.maketrans({"\n": " ", "\r": " ", "\t": " "})
_MATCH_LINE_RE = re.compile(r"^(?P<prefix>\d+:(?P<source>.*?):\d+:)(?P<text>.*)$", re.DOTALL)


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


def fit_to_width(text: str, columns: int) -> str:
    """Clip plain ``text`` so it occupies at most ``columns`` cells."""
    if columns <= 0:
        return ""
    out: list[str] = []
    used = 0
    for ch in text:
        width = char_display_width(ch)
        if used + width > columns:
            break
        out.append(ch)
        used += width
    return "".join(out)


def normalize_style(style: str) -> str:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        return DEFAULT_STYLE
    return style


@functools.lru_cache(maxsize=16)
def _formatter_for_style(style: str) -> Terminal256Formatter:
    return Terminal256Formatter(style=normalize_style(style))


@functools.lru_cache(maxsize=256)
def _lexer_for_source(source: str) -> Lexer:
    try:
        return get_lexer_for_filename(source)
    except ClassNotFound:
        return TextLexer()


def highlight_text(text: str, source: str, style: str = DEFAULT_STYLE) -> str:
    """Colour one line of ``text`` as if it came from file ``source``."""
    if not text.strip():
        return text
    rendered = highlight(text, _lexer_for_source(source), _formatter_for_style(style))
    return rendered.rstrip("\n")


def render_match_line(
    line: str,
    columns: int,
    style: str = DEFAULT_STYLE,
    no_color: bool = False,
) -> str:
    """Prepare an ``index:source:line:text`` match for drawing on one row.

    Colouring never changes the visible characters, only adds SGR sequences.
    """
    visible = fit_to_width(sanitize_terminal_text(line).translate(_WHITESPACE_TO_SPACE), columns)
    if no_color:
        return visible
    match = _MATCH_LINE_RE.match(visible)
    if match is None or not match.group("text"):
        return visible
    return match.group("prefix") + highlight_text(match.group("text"), match.group("source"), style)
