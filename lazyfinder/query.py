"""Editable single-line query buffer.

Owns the query text and the caret column. The caret row is fixed at the line
the query is drawn on; every edit keeps the column inside ``[0, len(text)]``.
Screen positions are measured in terminal cells, so wide characters count
twice.
"""

from __future__ import annotations

from .width import text_display_width


class Query:
    """Query text plus caret, mutated in place by the screen's edit actions."""

    def __init__(self, caret: tuple[int, int] = (0, 0)) -> None:
        row, col = caret
        self._row = max(0, row)
        self._origin = max(0, col)
        self._chars: list[str] = []
        self._col = 0
        self._drawn_width = 0

    @property
    def text(self) -> str:
        return "".join(self._chars)

    @property
    def caret(self) -> tuple[int, int]:
        """Caret as (row, character offset inside the text)."""
        return (self._row, self._col)

    def insert(self, char: str) -> None:
        if not char:
            return
        self._chars.insert(self._col, char)
        self._col += 1

    def delete(self) -> None:
        """Remove the character before the caret (backspace)."""
        if self._col == 0:
            return
        del self._chars[self._col - 1]
        self._col -= 1

    def move_left(self) -> None:
        self._col = max(0, self._col - 1)

    def move_right(self) -> None:
        self._col = min(len(self._chars), self._col + 1)

    def rendered_line(self) -> str:
        """Return the full query text padded over cells left by longer drafts."""
        text = self.text
        width = text_display_width(text)
        padded = text + " " * max(0, self._drawn_width - width)
        self._drawn_width = width
        return padded

    def caret_position(self) -> tuple[int, int]:
        """Absolute terminal position for the cursor."""
        return (self._row, self._origin + text_display_width("".join(self._chars[: self._col])))
