"""
Play mode codec.

The renderer reports repeat and shuffle as a single play mode. The wire
values behave like a bitfield (bit 0 = repeat, bit 1 = shuffle) with two
extra single-track repeat variants on bit 2. Code 5 does not exist.

Decoding accepts every code. Encoding only ever produces NORMAL, REPEAT,
SHUFFLE_NOREPEAT or SHUFFLE: a (repeat, shuffle) pair cannot express
REPEAT_ONE or SHUFFLE_REPEAT_ONE, so toggling either axis while the device
is in a single-track repeat mode drops it back to a whole-queue mode.
"""

from enum import IntEnum
from typing import Any

REPEAT_BIT = 1
SHUFFLE_BIT = 2


class PlayMode(IntEnum):
    """Play mode wire values."""

    NORMAL = 0
    REPEAT = 1  # repeat all
    SHUFFLE_NOREPEAT = 2
    SHUFFLE = 3  # shuffle + repeat all
    REPEAT_ONE = 4
    SHUFFLE_REPEAT_ONE = 6


def decode(code: int) -> tuple[bool, bool]:
    """
    Decode a play mode code.

    Returns:
        (repeat, shuffle)
    """
    return bool(code & REPEAT_BIT), bool(code & SHUFFLE_BIT)


def decode_name(name: Any) -> tuple[bool, bool]:
    """Decode a play mode by wire name. Unknown names decode as NORMAL."""
    if not isinstance(name, str):
        return decode(PlayMode.NORMAL)
    try:
        mode = PlayMode[name.upper()]
    except KeyError:
        mode = PlayMode.NORMAL
    return decode(mode)


def encode(repeat: bool, shuffle: bool) -> PlayMode:
    """Encode a (repeat, shuffle) pair. Never returns a single-track mode."""
    return PlayMode(bool(shuffle) * SHUFFLE_BIT + bool(repeat) * REPEAT_BIT)
