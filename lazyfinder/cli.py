"""Command-line front door for lazyfinder.

Parses CLI options, resolves candidate sources, and starts the background
loader. Then dispatches into the interactive finder loop.
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import shlex
import sys
from pathlib import Path

from .candidates import STDIN_SOURCE, CandidateLoader, CandidateStore, resolve_sources
from .highlight import normalize_style
from .input.reader import InputReader
from .runtime.config import CONFIG_DIR, FinderConfig, load_finder_config
from .runtime.loop import run_main_loop
from .runtime.terminal import TerminalSurface, open_input_fd
from .screen import Screen, ScreenOptions
from .search import create_search_command
from .status import LoadStatus

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _configure_logging(debug: bool, log_dir: Path = CONFIG_DIR) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        # The terminal belongs to the finder; stray log output would corrupt it.
        logging.disable(logging.CRITICAL)
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_dir / "debug.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fuzzy-find lines of the given files (or stdin) from a terminal query line."
    )
    parser.add_argument("paths", nargs="*", help="Files to search. Reads stdin when omitted.")
    parser.add_argument("--config", type=Path, default=None, help="Path to a JSON config file.")
    parser.add_argument("--style", default=None, help="Pygments style name for match lines.")
    parser.add_argument("--no-color", action="store_true", help="Draw match lines without colour.")
    parser.add_argument(
        "--filter-cmd",
        default=None,
        help="External filter command, e.g. 'fzf --no-sort --filter {query}'.",
    )
    parser.add_argument("--limit", type=_positive_int, default=None, help="Stop a search after N matches.")
    parser.add_argument("--debug", action="store_true", help="Write a debug log to the config directory.")
    return parser


def _filter_command(args: argparse.Namespace, config: FinderConfig) -> list[str] | None:
    if args.filter_cmd is None:
        return list(config.filter_command) if config.filter_command else None
    try:
        parts = shlex.split(args.filter_cmd)
    except ValueError as exc:
        raise SystemExit(f"Invalid --filter-cmd: {exc}") from exc
    return parts or None


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run the finder until the quit key is pressed."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.debug)
    config = load_finder_config(args.config)

    try:
        sources = resolve_sources(args.paths)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    if not os.isatty(sys.stdout.fileno()):
        raise SystemExit("stdout is not a terminal")

    store = CandidateStore()
    status = LoadStatus(len(sources))
    reads_stdin = STDIN_SOURCE in sources
    loader = CandidateLoader(sources, store, status, stdin=sys.stdin.buffer if reads_stdin else None)
    search_command = create_search_command(
        store,
        filter_command=_filter_command(args, config),
        limit=args.limit if args.limit is not None else config.search_limit,
    )
    options = ScreenOptions(
        input_timeout_ms=config.input_timeout_ms,
        max_sequence_bytes=config.max_sequence_bytes,
        style=normalize_style(args.style or config.style),
        no_color=args.no_color or bool(os.environ.get("NO_COLOR")),
    )
    logger.debug("starting with %d sources, options=%s", len(sources), options)

    loader.start()
    with open_input_fd(sys.stdin.fileno(), use_controlling_tty=reads_stdin) as input_fd:
        reader = InputReader(input_fd, config.input_timeout_ms, config.sequence_drain_ms)
        surface = TerminalSurface(input_fd, sys.stdout.fileno(), reader)
        screen = Screen(
            surface,
            status,
            search_command=search_command,
            options=options,
            key_overrides=config.key_overrides,
        )
        run_main_loop(screen)


if __name__ == "__main__":
    main()
