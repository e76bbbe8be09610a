"""Tests for the screen state machine.

A recording fake surface stands in for the terminal so the draw order,
cursor placement, and change detection can be asserted directly.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
import unittest
from unittest import mock

from lazyfinder.candidates import CandidateStore
from lazyfinder.errors import ScreenClosedError, SearchCommandError
from lazyfinder.input import keys
from lazyfinder.input.key_registry import Action
from lazyfinder.screen import Screen, ScreenOptions, ScreenState
from lazyfinder.search import SearchCommand
from lazyfinder.status import LoadStatus


class _FakeSurface:
    def __init__(self, columns: int = 40) -> None:
        self.ops: list[tuple] = []
        self._columns = columns
        self._input: deque[bytes | None] = deque()
        self._pending: deque[bytes] = deque()
        self._closed = False
        self.close_calls = 0

    def feed(self, data: bytes) -> None:
        """Queue ``data`` as one burst; an empty queue reads as idle."""
        for idx in range(len(data)):
            self._input.append(data[idx : idx + 1])

    def writes(self) -> list[str]:
        return [op[1] for op in self.ops if op[0] == "write"]

    def init_screen(self) -> None:
        self.ops.append(("init",))

    def set_echo(self, enabled: bool) -> None:
        self.ops.append(("echo", enabled))

    def set_input_timeout_ms(self, timeout_ms: int) -> None:
        self.ops.append(("timeout", timeout_ms))

    def move_cursor(self, row: int, col: int) -> None:
        self.ops.append(("move", row, col))

    def write_text(self, text: str) -> None:
        self.ops.append(("write", text))

    def clear_to_eol(self) -> None:
        self.ops.append(("eol",))

    def clear(self) -> None:
        self.ops.append(("clear",))

    def flush(self) -> None:
        self.ops.append(("flush",))

    def columns(self) -> int:
        return self._columns

    def read_input_unit(self, blocking: bool = True) -> bytes | None:
        if self._pending:
            return self._pending.popleft()
        if not self._input:
            return None
        return self._input.popleft()

    def unread(self, data: bytes) -> None:
        for idx in range(len(data) - 1, -1, -1):
            self._pending.appendleft(data[idx : idx + 1])

    def close_screen(self) -> None:
        self.close_calls += 1
        self._closed = True

    def is_closed(self) -> bool:
        return self._closed


class _ListSearch(SearchCommand):
    def __init__(self, lines: list[str]) -> None:
        super().__init__(CandidateStore())
        self.lines = lines
        self.queries: list[str] = []

    def iter_matches(self, query: str) -> Iterator[str]:
        self.queries.append(query)
        yield from self.lines


class _FailingSearch(SearchCommand):
    def __init__(self) -> None:
        super().__init__(CandidateStore())

    def iter_matches(self, query: str) -> Iterator[str]:
        yield "0:partial"
        raise SearchCommandError("filter crashed")


def _make_screen(
    surface: _FakeSurface | None = None,
    status: LoadStatus | None = None,
    **kwargs,
) -> tuple[Screen, _FakeSurface, LoadStatus]:
    surface = surface if surface is not None else _FakeSurface()
    status = status if status is not None else LoadStatus(1)
    kwargs.setdefault("options", ScreenOptions(no_color=True))
    screen = Screen(surface, status, **kwargs)
    return screen, surface, status


def _press(screen: Screen, surface: _FakeSurface, data: bytes) -> bool | None:
    surface.feed(data)
    return screen.wait_and_handle_input()


class ScreenLifecycleTests(unittest.TestCase):
    def test_init_enters_noecho_with_timeout_and_draws(self) -> None:
        screen, surface, _ = _make_screen(options=ScreenOptions(input_timeout_ms=100, no_color=True))

        self.assertIs(screen.state, ScreenState.UNINITIALIZED)
        screen.init()

        self.assertIs(screen.state, ScreenState.READY)
        self.assertEqual(surface.ops[:3], [("init",), ("echo", False), ("timeout", 100)])
        self.assertEqual(surface.ops[-1], ("flush",))
        self.assertIn(("write", "[0/1]"), surface.ops)

    def test_refresh_draws_query_then_right_aligned_status_then_caret(self) -> None:
        screen, surface, _ = _make_screen(_FakeSurface(columns=30))
        screen.init()
        surface.ops.clear()

        _press(screen, surface, b"h")

        self.assertEqual(
            surface.ops,
            [
                ("move", 0, 0),
                ("write", "h"),
                ("move", 0, 25),
                ("write", "[0/1]"),
                ("move", 0, 1),
                ("flush",),
            ],
        )
        self.assertIs(screen.state, ScreenState.RUNNING)

    def test_idle_tick_does_nothing(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()
        surface.ops.clear()

        self.assertIsNone(screen.wait_and_handle_input())
        self.assertEqual(surface.ops, [])

    def test_finish_closes_and_close_is_idempotent(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()

        _press(screen, surface, b"\x05")

        self.assertTrue(screen.closed())
        self.assertIs(screen.state, ScreenState.CLOSED)
        screen.close()
        self.assertEqual(surface.close_calls, 1)

    def test_operations_after_close_raise(self) -> None:
        screen, _, _ = _make_screen()
        screen.init()
        screen.close()

        with self.assertRaises(ScreenClosedError):
            screen.refresh()
        with self.assertRaises(ScreenClosedError):
            screen.wait_and_handle_input()
        with self.assertRaises(ScreenClosedError):
            screen.init()

    def test_session_closes_surface_on_error(self) -> None:
        screen, surface, _ = _make_screen()

        with self.assertRaises(RuntimeError):
            with screen.session():
                screen.init()
                raise RuntimeError("boom")

        self.assertEqual(surface.close_calls, 1)
        self.assertTrue(screen.closed())


class ScreenEditingTests(unittest.TestCase):
    def test_type_move_and_backspace_scenario(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()

        _press(screen, surface, b"a")
        _press(screen, surface, b"b")
        _press(screen, surface, b"\x1b[D")
        _press(screen, surface, b"\x7f")

        self.assertEqual(screen.query.text, "b")
        self.assertEqual(screen.query.caret, (0, 0))

    def test_right_arrow_and_utf8_input(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()

        _press(screen, surface, "é".encode("utf-8"))
        _press(screen, surface, b"\x1b[D")
        _press(screen, surface, b"\x1b[C")
        _press(screen, surface, b"x")

        self.assertEqual(screen.query.text, "éx")
        self.assertEqual(screen.query.caret, (0, 2))

    def test_wide_characters_place_cursor_by_cells(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()

        _press(screen, surface, "日".encode("utf-8"))
        _press(screen, surface, "本".encode("utf-8"))
        self.assertEqual(screen.query.text, "日本")
        self.assertEqual(surface.ops[-2], ("move", 0, 4))

        surface.ops.clear()
        _press(screen, surface, b"\x7f")
        self.assertEqual(surface.writes()[0], "日  ")
        self.assertEqual(surface.ops[-2], ("move", 0, 2))

    def test_stray_lead_byte_keeps_following_keystroke(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()

        self.assertIsNone(_press(screen, surface, b"\xc3a"))
        self.assertEqual(screen.query.text, "")

        screen.wait_and_handle_input()
        self.assertEqual(screen.query.text, "a")

    def test_burst_after_escape_sequence_is_kept_for_next_ticks(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()
        _press(screen, surface, b"a")

        _press(screen, surface, b"\x1b[Dz")
        self.assertEqual(screen.query.text, "a")
        self.assertEqual(screen.query.caret, (0, 0))

        screen.wait_and_handle_input()
        self.assertEqual(screen.query.text, "za")

    def test_escape_accumulation_is_capped(self) -> None:
        screen, surface, _ = _make_screen(options=ScreenOptions(max_sequence_bytes=4, no_color=True))
        screen.init()

        surface.feed(b"\x1b[99999~")
        screen.wait_and_handle_input()

        # Only four bytes are drained; the rest stay queued as later input.
        self.assertEqual(surface.read_input_unit(blocking=False), b"9")

    def test_unbound_key_changes_nothing(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()
        _press(screen, surface, b"a")
        surface.ops.clear()
        before = (screen.query.text, screen.query.caret, screen.changed_state())

        self.assertIsNone(_press(screen, surface, b"\x1b[A"))
        self.assertIsNone(_press(screen, surface, b"\x1b"))

        self.assertEqual((screen.query.text, screen.query.caret, screen.changed_state()), before)
        self.assertEqual(surface.ops, [])

    def test_key_overrides_rebind_actions(self) -> None:
        screen, surface, _ = _make_screen(key_overrides={Action.FINISH: keys.ESC})
        screen.init()

        _press(screen, surface, b"\x05")
        self.assertFalse(screen.closed())

        _press(screen, surface, b"\x1b")
        self.assertTrue(screen.closed())

    def test_perform_insert_without_char_is_not_handled(self) -> None:
        screen, _, _ = _make_screen()
        screen.init()

        self.assertFalse(screen.perform(Action.INSERT_CHAR))
        self.assertEqual(screen.query.text, "")


class ScreenChangeDetectionTests(unittest.TestCase):
    def test_changed_state_is_edge_triggered_by_rerender(self) -> None:
        status = LoadStatus(10)
        status.mark_loaded(3)
        screen, surface, _ = _make_screen(status=status)
        screen.init()

        screen.rerender()
        self.assertFalse(screen.changed_state())

        status.mark_loaded(2)
        screen.wait_and_handle_input()
        self.assertTrue(screen.changed_state())

        screen.rerender()
        self.assertFalse(screen.changed_state())
        self.assertEqual(surface.writes()[-1], "[5/10]")

    def test_changed_state_is_false_without_increase(self) -> None:
        status = LoadStatus(2)
        screen, _, _ = _make_screen(status=status)
        screen.init()

        self.assertFalse(screen.changed_state())
        screen.wait_and_handle_input()
        self.assertFalse(screen.changed_state())


class ScreenSearchTests(unittest.TestCase):
    def test_search_draws_each_match_then_clears_and_reinitializes(self) -> None:
        search = _ListSearch(["0:foo", "1:bar"])
        screen, surface, _ = _make_screen(search_command=search)
        screen.init()
        _press(screen, surface, b"f")
        surface.ops.clear()

        _press(screen, surface, b"\x12")

        self.assertEqual(search.queries, ["f"])
        self.assertEqual(surface.writes(), ["0:foo", "1:bar", "f", "[0/1]"])
        first_match = surface.ops.index(("write", "0:foo"))
        second_match = surface.ops.index(("write", "1:bar"))
        clear_idx = surface.ops.index(("clear",))
        init_idx = surface.ops.index(("init",))
        self.assertEqual(surface.ops[first_match - 1], ("move", 0, 0))
        self.assertEqual(surface.ops[first_match + 2], ("flush",))
        self.assertLess(first_match, second_match)
        self.assertLess(second_match, clear_idx)
        self.assertLess(clear_idx, init_idx)
        self.assertIs(screen.state, ScreenState.READY)

    def test_search_failure_still_restores_query_line(self) -> None:
        screen, surface, _ = _make_screen(search_command=_FailingSearch())
        screen.init()
        surface.ops.clear()

        with mock.patch("lazyfinder.screen.logger") as logger_mock:
            _press(screen, surface, b"\x12")

        logger_mock.error.assert_called_once()
        self.assertEqual(surface.writes()[0], "0:partial")
        self.assertIn(("clear",), surface.ops)
        self.assertIn(("init",), surface.ops)
        self.assertFalse(screen.closed())

    def test_search_without_command_only_refreshes(self) -> None:
        screen, surface, _ = _make_screen()
        screen.init()
        surface.ops.clear()

        _press(screen, surface, b"\x12")

        self.assertNotIn(("clear",), surface.ops)
        self.assertEqual(surface.ops[-1], ("flush",))


if __name__ == "__main__":
    unittest.main()
