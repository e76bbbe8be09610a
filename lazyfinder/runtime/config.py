"""Persistent JSON config helpers.

Stores input timing, the external filter command, the match-line style and
per-action key overrides. All access is defensive: malformed or missing
config falls back safely.
"""

from __future__ import annotations

import json
import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir

from ..highlight import DEFAULT_STYLE
from ..input import keys
from ..input.key_registry import Action
from ..input.reader import (
    DEFAULT_INPUT_TIMEOUT_MS,
    DEFAULT_MAX_SEQUENCE_BYTES,
    DEFAULT_SEQUENCE_DRAIN_MS,
)

logger = logging.getLogger(__name__)

APP_NAME = "lazyfinder"
CONFIG_FILENAME = "config.json"
CONFIG_DIR = Path(user_config_dir(APP_NAME, appauthor=False))
CONFIG_PATH = CONFIG_DIR / CONFIG_FILENAME

MAX_INPUT_TIMEOUT_MS = 10_000
MAX_SEQUENCE_BYTES = 64
MAX_SEQUENCE_DRAIN_MS = 100


@dataclass(frozen=True)
class FinderConfig:
    """Validated finder settings."""

    input_timeout_ms: int = DEFAULT_INPUT_TIMEOUT_MS
    max_sequence_bytes: int = DEFAULT_MAX_SEQUENCE_BYTES
    sequence_drain_ms: int = DEFAULT_SEQUENCE_DRAIN_MS
    filter_command: tuple[str, ...] | None = None
    search_limit: int | None = None
    style: str = DEFAULT_STYLE
    key_overrides: dict[Action, str] = field(default_factory=dict)


def load_config(path: Path | None = None) -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    config_path = path if path is not None else CONFIG_PATH
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring config %s: top level is not an object", config_path)
        return {}
    return data


def _coerce_bounded_int(value: object, default: int, minimum: int, maximum: int) -> int:
    """Accept plain ints inside ``[minimum, maximum]``; anything else is ``default``.

    Booleans are rejected even though they are ``int`` subclasses.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    if value < minimum or value > maximum:
        return default
    return value


def _parse_filter_command(value: object) -> tuple[str, ...] | None:
    if isinstance(value, str):
        try:
            parts = shlex.split(value)
        except ValueError:
            return None
        return tuple(parts) or None
    if isinstance(value, list) and value and all(isinstance(part, str) and part for part in value):
        return tuple(value)
    return None


def _parse_search_limit(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


def _parse_key_overrides(value: object) -> dict[Action, str]:
    """Map ``{"action_name": "KEY"}`` entries to validated overrides.

    Unknown action names and key identities are dropped. Character insertion
    is always bound to printable keys and cannot be moved.
    """
    if not isinstance(value, dict):
        return {}
    overrides: dict[Action, str] = {}
    for name, key in value.items():
        try:
            action = Action(name)
        except ValueError:
            logger.warning("unknown action %r in key overrides", name)
            continue
        if action is Action.INSERT_CHAR:
            logger.warning("ignoring key override for %s", name)
            continue
        if not isinstance(key, str) or key not in keys.KNOWN_KEYS:
            logger.warning("unknown key %r for action %s", key, name)
            continue
        overrides[action] = key
    return overrides


def parse_config(data: dict[str, object]) -> FinderConfig:
    style = data.get("style")
    return FinderConfig(
        input_timeout_ms=_coerce_bounded_int(
            data.get("input_timeout_ms"), DEFAULT_INPUT_TIMEOUT_MS, 1, MAX_INPUT_TIMEOUT_MS
        ),
        max_sequence_bytes=_coerce_bounded_int(
            data.get("max_sequence_bytes"), DEFAULT_MAX_SEQUENCE_BYTES, 2, MAX_SEQUENCE_BYTES
        ),
        sequence_drain_ms=_coerce_bounded_int(
            data.get("sequence_drain_ms"), DEFAULT_SEQUENCE_DRAIN_MS, 0, MAX_SEQUENCE_DRAIN_MS
        ),
        filter_command=_parse_filter_command(data.get("filter_command")),
        search_limit=_parse_search_limit(data.get("search_limit")),
        style=style if isinstance(style, str) and style else DEFAULT_STYLE,
        key_overrides=_parse_key_overrides(data.get("keys")),
    )


def load_finder_config(path: Path | None = None) -> FinderConfig:
    """Load and validate config from ``path`` (default: the user config dir)."""
    return parse_config(load_config(path))
