"""
Event type bitmask for filecron.
Inotify-compatible constants, symbolic rendering and parsing.
"""

from dataclasses import dataclass
from typing import Any, Tuple


IN_ACCESS = 0x00000001
IN_MODIFY = 0x00000002
IN_ATTRIB = 0x00000004
IN_CLOSE_WRITE = 0x00000008
IN_CLOSE_NOWRITE = 0x00000010
IN_OPEN = 0x00000020
IN_MOVED_FROM = 0x00000040
IN_MOVED_TO = 0x00000080
IN_CREATE = 0x00000100
IN_DELETE = 0x00000200
IN_DELETE_SELF = 0x00000400
IN_MOVE_SELF = 0x00000800
IN_UNMOUNT = 0x00002000
IN_Q_OVERFLOW = 0x00004000
IN_IGNORED = 0x00008000
IN_ONLYDIR = 0x01000000
IN_DONT_FOLLOW = 0x02000000
IN_ISDIR = 0x40000000
IN_ONESHOT = 0x80000000

IN_CLOSE = IN_CLOSE_WRITE | IN_CLOSE_NOWRITE
IN_MOVE = IN_MOVED_FROM | IN_MOVED_TO
IN_ALL_EVENTS = 0x00000fff

# Table-only option, never a kernel bit
NO_LOOP_SYMBOL = "IN_NO_LOOP"

EVENT_NAMES = {
    IN_ACCESS: "IN_ACCESS",
    IN_MODIFY: "IN_MODIFY",
    IN_ATTRIB: "IN_ATTRIB",
    IN_CLOSE_WRITE: "IN_CLOSE_WRITE",
    IN_CLOSE_NOWRITE: "IN_CLOSE_NOWRITE",
    IN_OPEN: "IN_OPEN",
    IN_MOVED_FROM: "IN_MOVED_FROM",
    IN_MOVED_TO: "IN_MOVED_TO",
    IN_CREATE: "IN_CREATE",
    IN_DELETE: "IN_DELETE",
    IN_DELETE_SELF: "IN_DELETE_SELF",
    IN_MOVE_SELF: "IN_MOVE_SELF",
    IN_UNMOUNT: "IN_UNMOUNT",
    IN_Q_OVERFLOW: "IN_Q_OVERFLOW",
    IN_IGNORED: "IN_IGNORED",
    IN_ONLYDIR: "IN_ONLYDIR",
    IN_DONT_FOLLOW: "IN_DONT_FOLLOW",
    IN_ISDIR: "IN_ISDIR",
    IN_ONESHOT: "IN_ONESHOT",
}

SYMBOLS = {name: bit for bit, name in EVENT_NAMES.items()}
SYMBOLS.update({
    "IN_CLOSE": IN_CLOSE,
    "IN_MOVE": IN_MOVE,
    "IN_ALL_EVENTS": IN_ALL_EVENTS,
})


def dump_types(mask: int) -> str:
    """
    Render the single bits set in a mask as comma-joined symbolic names.

    Args:
        mask: Event type bitmask

    Returns:
        Names in ascending bit order, e.g. "IN_CREATE,IN_ISDIR"
    """
    return ",".join(
        EVENT_NAMES[bit] for bit in sorted(EVENT_NAMES) if mask & bit
    )


def parse_mask(text: str) -> Tuple[int, bool]:
    """
    Parse a table mask field.

    Args:
        text: Decimal number or comma-separated symbolic names

    Returns:
        Tuple of (mask, no_loop)

    Raises:
        ValueError: If the field is empty or names an unknown symbol
    """
    text = text.strip()
    if not text:
        raise ValueError("Event mask cannot be empty")

    if text.isdigit():
        return int(text), False

    mask = 0
    no_loop = False
    for symbol in text.split(','):
        symbol = symbol.strip()
        if not symbol:
            continue
        if symbol == NO_LOOP_SYMBOL:
            no_loop = True
        elif symbol in SYMBOLS:
            mask |= SYMBOLS[symbol]
        else:
            raise ValueError(f"Unknown event type: {symbol}")

    return mask, no_loop


def format_mask(mask: int, no_loop: bool = False) -> str:
    """Render a mask in table syntax (inverse of parse_mask)."""
    names = [EVENT_NAMES[bit] for bit in sorted(EVENT_NAMES) if mask & bit]
    if no_loop:
        names.append(NO_LOOP_SYMBOL)
    return ",".join(names) if names else str(mask)


@dataclass(frozen=True)
class WatchEvent:
    """A decoded notification delivered for one watch."""
    watch: Any
    name: str
    mask: int
