"""Input-layer public API for key decoding and dispatch.

Exports are split between low-level byte decoding (``keys``, ``InputReader``)
and the key-to-action table used by the screen.
"""

from . import keys
from .key_registry import Action, KeyBinding, KeyMap, DEFAULT_BINDINGS, resolve_bindings
from .reader import (
    DEFAULT_INPUT_TIMEOUT_MS,
    DEFAULT_MAX_SEQUENCE_BYTES,
    DEFAULT_SEQUENCE_DRAIN_MS,
    InputReader,
)

__all__ = [
    "keys",
    "Action",
    "KeyBinding",
    "KeyMap",
    "DEFAULT_BINDINGS",
    "resolve_bindings",
    "InputReader",
    "DEFAULT_INPUT_TIMEOUT_MS",
    "DEFAULT_MAX_SEQUENCE_BYTES",
    "DEFAULT_SEQUENCE_DRAIN_MS",
]
