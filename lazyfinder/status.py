"""Load progress shown in the status corner of the query line."""

from __future__ import annotations

import threading


class LoadStatus:
    """Count of candidate sources finished loading, out of ``total``.

    Written by the loader thread and read by the screen; ``loaded`` only
    ever grows.
    """

    def __init__(self, total: int) -> None:
        self.total = max(0, total)
        self._loaded = 0
        self._lock = threading.Lock()

    @property
    def loaded(self) -> int:
        with self._lock:
            return self._loaded

    def mark_loaded(self, count: int = 1) -> int:
        with self._lock:
            self._loaded = min(self.total, self._loaded + max(0, count))
            return self._loaded

    def is_complete(self) -> bool:
        return self.loaded >= self.total

    def summary(self) -> str:
        return f"[{self.loaded}/{self.total}]"

    def __str__(self) -> str:
        return self.summary()
