"""Buffered raw-byte reader for terminal input.

Wraps a file descriptor with ``select``-bounded single-byte reads plus a
pushback buffer, so bytes read ahead while draining an escape burst can be
handed back for the next key.
"""

from __future__ import annotations

import os
import select
from collections import deque

DEFAULT_INPUT_TIMEOUT_MS = 100
DEFAULT_SEQUENCE_DRAIN_MS = 5
DEFAULT_MAX_SEQUENCE_BYTES = 8


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


class InputReader:
    """Read single bytes with a bounded wait, honoring pushed-back input."""

    def __init__(
        self,
        fd: int,
        timeout_ms: int = DEFAULT_INPUT_TIMEOUT_MS,
        drain_ms: int = DEFAULT_SEQUENCE_DRAIN_MS,
    ) -> None:
        self.fd = fd
        self.timeout_ms = timeout_ms
        self.drain_ms = drain_ms
        self._pending: deque[bytes] = deque()

    def read_unit(self, blocking: bool = True) -> bytes | None:
        """Return one byte, or ``None`` when nothing arrived in time.

        Blocking reads wait up to ``timeout_ms``; non-blocking reads only wait
        ``drain_ms``, long enough to catch the rest of an escape burst.
        """
        if self._pending:
            return self._pending.popleft()
        return _read_ready_byte(self.fd, self.timeout_ms if blocking else self.drain_ms)

    def unread(self, data: bytes) -> None:
        """Push bytes back so following reads return them first, in order."""
        for idx in range(len(data) - 1, -1, -1):
            self._pending.appendleft(data[idx : idx + 1])

    def has_pending(self) -> bool:
        return bool(self._pending)
