"""Key identities and raw-byte decoding tables.

Raw terminal input arrives as bytes. A single byte below 0x80 is always a
complete key; ESC and UTF-8 lead bytes start multi-byte sequences whose length
is only known once the burst following them has been read.
"""

from __future__ import annotations

CTRL_R = "CTRL_R"
CTRL_E = "CTRL_E"
LEFT = "LEFT"
RIGHT = "RIGHT"
UP = "UP"
DOWN = "DOWN"
HOME = "HOME"
END = "END"
DELETE = "DELETE"
BACKSPACE = "BACKSPACE"
ENTER = "ENTER"
TAB = "TAB"
ESC = "ESC"
CHAR = "CHAR"
UNKNOWN = "UNKNOWN"

_ESC_BYTE = 0x1B

# Ctrl-H, Tab, LF and CR share codes with named keys and are mapped below.
_CONTROL_KEYS: dict[int, str] = {
    code: f"CTRL_{chr(ord('A') + code - 1)}" for code in range(0x01, 0x1B)
}
_CONTROL_KEYS.update(
    {
        0x08: BACKSPACE,
        0x09: TAB,
        0x0A: ENTER,
        0x0D: ENTER,
        0x7F: BACKSPACE,
    }
)

_ESCAPE_SEQUENCES: dict[bytes, str] = {
    b"\x1b[A": UP,
    b"\x1b[B": DOWN,
    b"\x1b[C": RIGHT,
    b"\x1b[D": LEFT,
    b"\x1bOA": UP,
    b"\x1bOB": DOWN,
    b"\x1bOC": RIGHT,
    b"\x1bOD": LEFT,
    b"\x1b[H": HOME,
    b"\x1b[F": END,
    b"\x1bOH": HOME,
    b"\x1bOF": END,
    b"\x1b[1~": HOME,
    b"\x1b[7~": HOME,
    b"\x1b[4~": END,
    b"\x1b[8~": END,
    b"\x1b[3~": DELETE,
}

KNOWN_KEYS: frozenset[str] = frozenset(
    set(_CONTROL_KEYS.values()) | set(_ESCAPE_SEQUENCES.values()) | {ESC, CHAR}
)


def is_self_describing(unit: bytes) -> bool:
    """Return whether one raw unit is already a complete key."""
    if len(unit) != 1:
        return False
    code = unit[0]
    return code < 0x80 and code != _ESC_BYTE


def _utf8_length(lead: int) -> int:
    if lead < 0x80:
        return 1
    if 0xC0 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF7:
        return 4
    return 1


def sequence_length(raw: bytes) -> int:
    """Return how many leading bytes of ``raw`` belong to its first key.

    Bytes past that point were read in the same burst (fast typing, paste)
    and belong to following keys.
    """
    if not raw:
        return 0
    lead = raw[0]
    if lead != _ESC_BYTE:
        length = min(len(raw), _utf8_length(lead))
        for idx in range(1, length):
            if not 0x80 <= raw[idx] <= 0xBF:
                # A stray lead byte; whatever follows is its own key.
                return 1
        return length

    for sequence in sorted(_ESCAPE_SEQUENCES, key=len, reverse=True):
        if raw.startswith(sequence):
            return len(sequence)

    if len(raw) >= 2 and raw[1:2] in {b"[", b"O"}:
        # CSI/SS3: parameter bytes until the first final byte.
        for idx in range(2, len(raw)):
            if 0x40 <= raw[idx] <= 0x7E:
                return idx + 1
        return len(raw)
    return 1


def decode(raw: bytes) -> tuple[str, str | None]:
    """Translate one complete raw key sequence to ``(key, char)``.

    ``char`` is only set for ``CHAR`` keys.
    """
    if not raw:
        return UNKNOWN, None

    if len(raw) == 1:
        code = raw[0]
        if code == _ESC_BYTE:
            return ESC, None
        control = _CONTROL_KEYS.get(code)
        if control is not None:
            return control, None
        if code < 0x20:
            return UNKNOWN, None
        if code < 0x80:
            return CHAR, chr(code)
        return UNKNOWN, None

    if raw[0] == _ESC_BYTE:
        return _ESCAPE_SEQUENCES.get(bytes(raw), UNKNOWN), None

    try:
        text = bytes(raw).decode("utf-8")
    except UnicodeDecodeError:
        return UNKNOWN, None
    if len(text) != 1 or not text.isprintable():
        return UNKNOWN, None
    return CHAR, text
