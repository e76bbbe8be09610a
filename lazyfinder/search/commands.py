"""Lazily producing search commands.

A search turns the current query into a stream of ``index:line`` matches.
Matches are produced one at a time so the caller can draw each before the
next is computed.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
import threading
from collections.abc import Callable, Iterator
from typing import IO, TYPE_CHECKING

from ..errors import SearchCommandError

if TYPE_CHECKING:
    from ..candidates import CandidateStore

logger = logging.getLogger(__name__)

QUERY_PLACEHOLDER = "{query}"
DEFAULT_FILTER_COMMAND = ("fzf", "--no-sort", "--filter", QUERY_PLACEHOLDER)


class SearchCommand:
    """Base search: subclasses implement ``iter_matches``."""

    def __init__(self, store: CandidateStore, limit: int | None = None) -> None:
        self.store = store
        self.limit = limit if limit is not None and limit > 0 else None

    def iter_matches(self, query: str) -> Iterator[str]:
        raise NotImplementedError

    def run(self, query: str, on_match: Callable[[str], None]) -> int:
        """Call ``on_match`` once per match in discovery order.

        Returns the number of matches produced.
        """
        count = 0
        for line in self.iter_matches(query):
            on_match(line)
            count += 1
        logger.debug("search %r produced %d matches", query, count)
        return count

    def _limit_reached(self, produced: int) -> bool:
        return self.limit is not None and produced >= self.limit


class SubsequenceSearch(SearchCommand):
    """Filter the candidate store in-process."""

    def iter_matches(self, query: str) -> Iterator[str]:
        produced = 0
        for idx, candidate in self.store.each_by_filter(query):
            if self._limit_reached(produced):
                return
            yield f"{idx}:{candidate.to_line()}"
            produced += 1


def build_filter_argv(template: list[str] | tuple[str, ...], query: str) -> list[str]:
    """Substitute ``{query}`` in ``template``; append the query if absent."""
    if any(QUERY_PLACEHOLDER in part for part in template):
        return [part.replace(QUERY_PLACEHOLDER, query) for part in template]
    return [*template, query]


class ExternalFilterSearch(SearchCommand):
    """Pipe candidates through an external filter such as ``fzf --filter``.

    Candidate lines are written as ``index:line`` so the filter's output is
    already in match-line form.
    """

    def __init__(
        self,
        store: CandidateStore,
        command: list[str] | tuple[str, ...] = DEFAULT_FILTER_COMMAND,
        limit: int | None = None,
    ) -> None:
        super().__init__(store, limit=limit)
        if not command:
            raise ValueError("filter command must not be empty")
        self.command = list(command)

    def _feed(self, stdin: IO[str]) -> None:
        try:
            for idx, candidate in enumerate(self.store.snapshot()):
                stdin.write(f"{idx}:{candidate.to_line()}\n")
        except (BrokenPipeError, ValueError):
            # Filter exited (or was stopped at the match limit) before reading everything.
            pass
        finally:
            try:
                stdin.close()
            except BrokenPipeError:
                pass

    def iter_matches(self, query: str) -> Iterator[str]:
        argv = build_filter_argv(self.command, query)
        # Only stdout is drained while streaming; stderr is read back after exit.
        with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as stderr_file:
            yield from self._stream(argv, stderr_file)

    def _stream(self, argv: list[str], stderr_file: IO[str]) -> Iterator[str]:
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=stderr_file,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise SearchCommandError(f"failed to run {argv[0]}: {exc}") from exc

        assert proc.stdin is not None
        assert proc.stdout is not None
        feeder = threading.Thread(
            target=self._feed,
            args=(proc.stdin,),
            name="lazyfinder-filter-feed",
            daemon=True,
        )
        feeder.start()

        produced = 0
        completed = False
        try:
            for raw in proc.stdout:
                if self._limit_reached(produced):
                    break
                line = raw.rstrip("\n")
                if not line:
                    continue
                yield line
                produced += 1
            else:
                completed = True
        finally:
            # Stopped at the limit or abandoned by the consumer.
            if not completed and proc.poll() is None:
                proc.terminate()
            proc.stdout.close()
            returncode = proc.wait()
            feeder.join(timeout=1.0)

        # fzf --filter exits with 1 when nothing matched.
        if completed and returncode not in (0, 1):
            stderr_file.seek(0)
            message = stderr_file.read().strip() or f"exit status {returncode}"
            raise SearchCommandError(f"{argv[0]} failed: {message}")


def create_search_command(
    store: CandidateStore,
    filter_command: list[str] | None = None,
    limit: int | None = None,
) -> SearchCommand:
    """Prefer the configured external filter when its executable exists."""
    if filter_command:
        if shutil.which(filter_command[0]) is not None:
            return ExternalFilterSearch(store, filter_command, limit=limit)
        logger.warning("filter command %r not found; using built-in matching", filter_command[0])
    return SubsequenceSearch(store, limit=limit)
