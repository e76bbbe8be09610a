"""Query-line screen and its key-dispatch state machine.

The screen owns the render surface and the query buffer. It reads one key per
tick (waiting at most the input timeout), routes it through the key map, and
redraws the query line after every edit. Load progress changes are picked up
by the driver through ``changed_state``/``rerender``.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .errors import ScreenClosedError, SearchCommandError
from .highlight import DEFAULT_STYLE, render_match_line
from .input import keys
from .input.key_registry import Action, KeyMap, resolve_bindings
from .input.reader import DEFAULT_INPUT_TIMEOUT_MS, DEFAULT_MAX_SEQUENCE_BYTES
from .query import Query
from .search import SearchCommand
from .status import LoadStatus

logger = logging.getLogger(__name__)


class RenderSurface(Protocol):
    def init_screen(self) -> None: ...
    def set_echo(self, enabled: bool) -> None: ...
    def set_input_timeout_ms(self, timeout_ms: int) -> None: ...
    def move_cursor(self, row: int, col: int) -> None: ...
    def write_text(self, text: str) -> None: ...
    def clear_to_eol(self) -> None: ...
    def clear(self) -> None: ...
    def flush(self) -> None: ...
    def columns(self) -> int: ...
    def read_input_unit(self, blocking: bool = True) -> bytes | None: ...
    def unread(self, data: bytes) -> None: ...
    def close_screen(self) -> None: ...
    def is_closed(self) -> bool: ...


class ScreenState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RUNNING = "running"
    REDRAWING = "redrawing"
    CLOSED = "closed"


@dataclass(frozen=True)
class ScreenOptions:
    """Input timing and match-line presentation settings."""

    input_timeout_ms: int = DEFAULT_INPUT_TIMEOUT_MS
    max_sequence_bytes: int = DEFAULT_MAX_SEQUENCE_BYTES
    style: str = DEFAULT_STYLE
    no_color: bool = False


class Screen:
    """Query line plus status summary over a full-screen terminal surface."""

    def __init__(
        self,
        surface: RenderSurface,
        status: LoadStatus,
        key_map: KeyMap | None = None,
        search_command: SearchCommand | None = None,
        caret: tuple[int, int] = (0, 0),
        options: ScreenOptions | None = None,
        key_overrides: dict[Action, str] | None = None,
    ) -> None:
        self._surface = surface
        self._status = status
        self._prev_loaded = status.loaded
        self._key_map = key_map if key_map is not None else KeyMap()
        self._search = search_command
        self._query = Query(caret)
        self._options = options if options is not None else ScreenOptions()
        self._state = ScreenState.UNINITIALIZED

        self._register_events(key_overrides)

    @property
    def query(self) -> Query:
        return self._query

    @property
    def state(self) -> ScreenState:
        return self._state

    @property
    def key_map(self) -> KeyMap:
        return self._key_map

    def status_text(self) -> str:
        return self._status.summary()

    def init(self) -> None:
        """Enter raw no-echo mode with a bounded input wait and draw once."""
        self._ensure_open()
        self._surface.init_screen()
        self._surface.set_echo(False)
        self._surface.set_input_timeout_ms(self._options.input_timeout_ms)
        self._draw()
        self._surface.flush()
        self._state = ScreenState.READY
        logger.debug("screen initialized (%d columns)", self._surface.columns())

    def rerender(self) -> None:
        self._prev_loaded = self._status.loaded
        self.refresh()

    def refresh(self) -> None:
        """Redraw the whole query line, then park the cursor on the caret."""
        self._ensure_open()
        self._state = ScreenState.REDRAWING
        self._draw()
        self._surface.flush()
        self._state = ScreenState.RUNNING

    def wait_and_handle_input(self) -> bool | None:
        """Wait up to the input timeout for a key and dispatch it.

        Returns the dispatch result, or ``None`` when no key arrived or the
        key is unbound.
        """
        self._ensure_open()
        unit = self._surface.read_input_unit(blocking=True)
        if unit is None:
            return None
        if self._state is ScreenState.READY:
            self._state = ScreenState.RUNNING
        return self._handle_event(unit)

    def changed_state(self) -> bool:
        """Whether more sources finished loading since the last ``rerender``."""
        return self._prev_loaded < self._status.loaded

    def closed(self) -> bool:
        return self._state is ScreenState.CLOSED or self._surface.is_closed()

    def close(self) -> None:
        if not self._surface.is_closed():
            self._surface.close_screen()
            logger.debug("screen closed")
        self._state = ScreenState.CLOSED

    @contextlib.contextmanager
    def session(self) -> Iterator[Screen]:
        """Close the surface on every exit path, including errors."""
        try:
            yield self
        finally:
            self.close()

    # event
    def perform(self, action: Action, char: str | None = None) -> bool:
        if action is Action.START_SEARCH:
            self.start_search()
        elif action is Action.FINISH:
            self.finish()
        elif action is Action.MOVE_LEFT:
            self.move_left()
        elif action is Action.MOVE_RIGHT:
            self.move_right()
        elif action is Action.DELETE_CHAR:
            self.delete_char()
        elif action is Action.INSERT_CHAR:
            if char is None:
                return False
            self.insert_char(char)
        else:
            return False
        return True

    def start_search(self) -> None:
        """Draw each match on the first line as the search produces it.

        Once the search is exhausted the screen is cleared and re-initialized
        to restore the query line.
        """
        if self._search is None:
            logger.debug("no search command configured")
            self.refresh()
            return
        query = self._query.text
        columns = self._surface.columns()

        def draw_match(line: str) -> None:
            self._surface.move_cursor(0, 0)
            self._surface.write_text(
                render_match_line(line, columns, self._options.style, self._options.no_color)
            )
            self._surface.clear_to_eol()
            self._surface.flush()

        logger.debug("search started for %r", query)
        try:
            self._search.run(query, draw_match)
        except SearchCommandError as exc:
            logger.error("search failed: %s", exc)
        self._surface.clear()
        self.init()

    def delete_char(self) -> None:
        self._query.delete()
        self.refresh()

    def move_left(self) -> None:
        self._query.move_left()
        self.refresh()

    def move_right(self) -> None:
        self._query.move_right()
        self.refresh()

    def finish(self) -> None:
        self.close()

    def insert_char(self, char: str) -> None:
        self._query.insert(char)
        self.refresh()

    def _ensure_open(self) -> None:
        if self._state is ScreenState.CLOSED:
            raise ScreenClosedError("screen is closed")

    def _read_sequence(self, first: bytes) -> bytes:
        """Collect the rest of a multi-byte key that starts with ``first``.

        Reads without blocking until input runs dry or the length cap is hit;
        bytes past the first complete key are pushed back for the next tick.
        """
        buffer = bytearray(first)
        while len(buffer) < self._options.max_sequence_bytes:
            unit = self._surface.read_input_unit(blocking=False)
            if unit is None:
                break
            buffer += unit
        length = keys.sequence_length(bytes(buffer))
        if length < len(buffer):
            self._surface.unread(bytes(buffer[length:]))
        return bytes(buffer[:length])

    def _handle_event(self, unit: bytes) -> bool | None:
        sequence = unit if keys.is_self_describing(unit) else self._read_sequence(unit)
        key, char = keys.decode(sequence)
        return self._key_map.dispatch(key, char)

    def _register_events(self, key_overrides: dict[Action, str] | None) -> None:
        self._key_map.bind_table(self, resolve_bindings(key_overrides))

    def _draw(self) -> None:
        self._print_head_line()
        self._surface.move_cursor(*self._query.caret_position())

    def _print_head_line(self) -> None:
        # No previous frame is kept, so the whole query is redrawn.
        self._surface.move_cursor(0, 0)
        self._surface.write_text(self._query.rendered_line())

        summary = self.status_text()
        self._surface.move_cursor(0, max(0, self._surface.columns() - len(summary)))
        self._surface.write_text(summary)
