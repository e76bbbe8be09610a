"""Raw-mode terminal render surface.

Owns raw-mode lifecycle, alternate-screen switching, and the buffered writes
the screen draws with. Input reads go through an ``InputReader`` so bytes
read ahead while draining an escape burst can be handed back.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import termios
import tty
from collections.abc import Iterator

from ..input.reader import DEFAULT_INPUT_TIMEOUT_MS, InputReader

ENTER_ALT_SCREEN = "\x1b[?1049h"
LEAVE_ALT_SCREEN = "\x1b[?1049l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_SCREEN = "\x1b[2J\x1b[H"
CLEAR_TO_EOL = "\x1b[K"


class TerminalSurface:
    """Character-cell surface over a tty pair of file descriptors."""

    def __init__(self, stdin_fd: int, stdout_fd: int, reader: InputReader | None = None) -> None:
        """Bind stdin/stdout file descriptors; tty state is captured on init."""
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self.reader = reader if reader is not None else InputReader(stdin_fd, DEFAULT_INPUT_TIMEOUT_MS)
        self._saved_tty_state: list | None = None
        self._pending_output: list[str] = []
        self._active = False
        self._closed = False

    def init_screen(self) -> None:
        """Enter raw alternate-screen mode; repeated calls only redraw setup."""
        if not self._active:
            self._saved_tty_state = termios.tcgetattr(self.stdin_fd)
            tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
            self._active = True
            self._closed = False
        self._pending_output.append(ENTER_ALT_SCREEN)

    def set_echo(self, enabled: bool) -> None:
        attrs = termios.tcgetattr(self.stdin_fd)
        if enabled:
            attrs[3] |= termios.ECHO
        else:
            attrs[3] &= ~termios.ECHO
        termios.tcsetattr(self.stdin_fd, termios.TCSANOW, attrs)

    def set_input_timeout_ms(self, timeout_ms: int) -> None:
        self.reader.timeout_ms = max(0, timeout_ms)

    def move_cursor(self, row: int, col: int) -> None:
        self._pending_output.append(f"\x1b[{max(0, row) + 1};{max(0, col) + 1}H")

    def write_text(self, text: str) -> None:
        self._pending_output.append(text)

    def clear_to_eol(self) -> None:
        self._pending_output.append(CLEAR_TO_EOL)

    def clear(self) -> None:
        self._pending_output.append(CLEAR_SCREEN)

    def flush(self) -> None:
        if not self._pending_output:
            return
        data = "".join(self._pending_output).encode("utf-8", errors="replace")
        self._pending_output.clear()
        while data:
            written = os.write(self.stdout_fd, data)
            data = data[written:]

    def columns(self) -> int:
        return max(1, shutil.get_terminal_size((80, 24)).columns)

    def read_input_unit(self, blocking: bool = True) -> bytes | None:
        """Read one raw byte; ``None`` when nothing arrived within the wait."""
        return self.reader.read_unit(blocking=blocking)

    def unread(self, data: bytes) -> None:
        self.reader.unread(data)

    def close_screen(self) -> None:
        """Restore the main screen and the saved tty state; safe to repeat."""
        if self._closed:
            return
        self._closed = True
        self._pending_output.clear()
        if not self._active:
            return
        self._active = False
        try:
            os.write(self.stdout_fd, (SHOW_CURSOR + LEAVE_ALT_SCREEN).encode("ascii"))
        finally:
            if self._saved_tty_state is not None:
                termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    def is_closed(self) -> bool:
        return self._closed

    @contextlib.contextmanager
    def session(self) -> Iterator[TerminalSurface]:
        """Context manager that guarantees terminal restoration on exit."""
        try:
            yield self
        finally:
            self.close_screen()


@contextlib.contextmanager
def open_input_fd(stdin_fd: int, use_controlling_tty: bool) -> Iterator[int]:
    """Yield the fd keys are read from.

    When candidates arrive on a piped stdin, keys come from ``/dev/tty``.
    """
    if not use_controlling_tty:
        yield stdin_fd
        return
    fd = os.open("/dev/tty", os.O_RDONLY)
    try:
        yield fd
    finally:
        os.close(fd)
