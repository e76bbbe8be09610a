"""Key-to-action dispatch table.

Each key identity maps to exactly one ``(target, action)`` binding; binding a
key again replaces the earlier entry. Keys without a binding are dropped.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from . import keys


class Action(Enum):
    """Actions a key can be bound to."""

    START_SEARCH = "start_search"
    FINISH = "finish"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    DELETE_CHAR = "delete_char"
    INSERT_CHAR = "insert_char"


class ActionTarget(Protocol):
    def perform(self, action: Action, char: str | None = None) -> bool | None: ...


DEFAULT_BINDINGS: dict[str, Action] = {
    keys.CTRL_R: Action.START_SEARCH,
    keys.CTRL_E: Action.FINISH,
    keys.LEFT: Action.MOVE_LEFT,
    keys.RIGHT: Action.MOVE_RIGHT,
    keys.BACKSPACE: Action.DELETE_CHAR,
    keys.CHAR: Action.INSERT_CHAR,
}


def resolve_bindings(overrides: Mapping[Action, str] | None = None) -> dict[str, Action]:
    """Merge per-action key overrides into the default key table.

    An overridden action loses its default key, and the new key drops whatever
    it was bound to before.
    """
    table = dict(DEFAULT_BINDINGS)
    for action, key in (overrides or {}).items():
        for bound_key in [k for k, a in table.items() if a is action]:
            del table[bound_key]
        table[key] = action
    return table


@dataclass(frozen=True)
class KeyBinding:
    """One key identity bound to an action on a target."""

    key: str
    target: ActionTarget
    action: Action


class KeyMap:
    """Small key-dispatch table keyed by exact key identity."""

    def __init__(self) -> None:
        self._bindings: dict[str, KeyBinding] = {}

    def bind(self, key: str, target: ActionTarget, action: Action) -> KeyMap:
        """Register one binding, overwriting any existing one for ``key``."""
        self._bindings[key] = KeyBinding(key, target, action)
        return self

    def bind_table(self, target: ActionTarget, table: Mapping[str, Action]) -> KeyMap:
        """Bind every ``key -> action`` pair of ``table`` to ``target``."""
        for key, action in table.items():
            self.bind(key, target, action)
        return self

    def binding_for(self, key: str) -> KeyBinding | None:
        return self._bindings.get(key)

    def bindings(self) -> dict[str, Action]:
        """Snapshot of the current ``key -> action`` table."""
        return {key: binding.action for key, binding in self._bindings.items()}

    def dispatch(self, key: str, char: str | None = None) -> bool | None:
        """Invoke the bound action for ``key``; ``None`` means unbound.

        ``char`` is forwarded only to the printable-character binding.
        """
        binding = self.binding_for(key)
        if binding is None:
            return None
        if binding.key == keys.CHAR:
            return binding.target.perform(binding.action, char)
        return binding.target.perform(binding.action)
