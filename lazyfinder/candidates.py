"""Candidate lines and their background loader.

Sources are read on one daemon thread so the finder is usable while large
inputs are still streaming in. The screen only observes progress through
``LoadStatus``; it never waits on the loader.
"""

from __future__ import annotations

import functools
import logging
import os
import sys
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from .highlight import sanitize_terminal_text
from .search.matching import subsequence_match
from .status import LoadStatus

logger = logging.getLogger(__name__)

STDIN_SOURCE = "-"


def read_text(path: Path) -> str:
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


@functools.lru_cache(maxsize=1024)
def _relative_display_path(source: str, base: str) -> str:
    try:
        return Path(source).resolve().relative_to(Path(base).resolve()).as_posix()
    except ValueError:
        return Path(source).as_posix()


def to_display_path(source: str, cwd: Path | None = None) -> str:
    """Present ``source`` relative to ``cwd`` when it lives below it."""
    if source == STDIN_SOURCE:
        return source
    return _relative_display_path(source, str(cwd or Path.cwd()))


@dataclass(frozen=True)
class Candidate:
    source: str
    line_number: int
    text: str

    def to_line(self) -> str:
        return f"{to_display_path(self.source)}:{self.line_number}:{self.text}"


class CandidateStore:
    """Append-only candidate list shared between loader and search."""

    def __init__(self) -> None:
        self._items: list[Candidate] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def append(self, candidate: Candidate) -> None:
        with self._lock:
            self._items.append(candidate)

    def extend(self, candidates: list[Candidate]) -> None:
        with self._lock:
            self._items.extend(candidates)

    def snapshot(self) -> list[Candidate]:
        with self._lock:
            return list(self._items)

    def each_by_filter(
        self,
        query: str,
        predicate: Callable[[str, str], bool] = subsequence_match,
    ) -> Iterator[tuple[int, Candidate]]:
        """Yield ``(index, candidate)`` for matching candidates in load order.

        Iterates the candidates present when iteration starts; lines loaded
        meanwhile are picked up by the next search.
        """
        for idx, candidate in enumerate(self.snapshot()):
            if predicate(query, candidate.to_line()):
                yield idx, candidate


def _candidates_from_text(source: str, text: str) -> list[Candidate]:
    return [
        Candidate(source=source, line_number=number, text=sanitize_terminal_text(line))
        for number, line in enumerate(text.splitlines(), start=1)
    ]


class CandidateLoader:
    """Load every source into ``store`` on a daemon thread.

    ``status`` advances once per finished source, including sources that
    failed to load, so progress always reaches ``total``.
    """

    def __init__(
        self,
        sources: list[str],
        store: CandidateStore,
        status: LoadStatus,
        stdin: BinaryIO | None = None,
    ) -> None:
        self.sources = list(sources)
        self.store = store
        self.status = status
        self._stdin = stdin
        self._thread: threading.Thread | None = None

    def _load_stream(self, stream: BinaryIO) -> None:
        for number, raw in enumerate(stream, start=1):
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            self.store.append(
                Candidate(source=STDIN_SOURCE, line_number=number, text=sanitize_terminal_text(line))
            )

    def _load_source(self, source: str) -> None:
        if source == STDIN_SOURCE:
            stream = self._stdin if self._stdin is not None else sys.stdin.buffer
            self._load_stream(stream)
            return
        self.store.extend(_candidates_from_text(source, read_text(Path(source))))

    def _worker(self) -> None:
        for source in self.sources:
            try:
                self._load_source(source)
            except OSError as exc:
                logger.warning("could not read %s: %s", source, exc)
            loaded = self.status.mark_loaded()
            logger.debug("loaded %s (%d/%d, %d candidates)", source, loaded, self.status.total, len(self.store))

    def start(self) -> CandidateLoader:
        if self._thread is not None:
            return self
        self._thread = threading.Thread(
            target=self._worker,
            name="lazyfinder-loader",
            daemon=True,
        )
        self._thread.start()
        return self

    def join(self, timeout: float | None = None) -> bool:
        """Wait for loading to finish; returns whether the thread is done."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()


def resolve_sources(paths: list[str], stdin_is_tty: bool | None = None) -> list[str]:
    """Return candidate sources for the command line ``paths``.

    Raises ``ValueError`` for directories and missing files; falls back to
    standard input when no paths are given and stdin is piped.
    """
    if stdin_is_tty is None:
        stdin_is_tty = os.isatty(sys.stdin.fileno())
    if not paths:
        if stdin_is_tty:
            raise ValueError("no input: pass files or pipe lines on stdin")
        return [STDIN_SOURCE]
    sources: list[str] = []
    for raw in paths:
        if raw == STDIN_SOURCE:
            sources.append(STDIN_SOURCE)
            continue
        path = Path(raw)
        if path.is_dir():
            raise ValueError(f"Not a file: {path}")
        if not path.exists():
            raise ValueError(f"Path not found: {path}")
        sources.append(raw)
    return sources
