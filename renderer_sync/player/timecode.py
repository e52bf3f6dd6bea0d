"""
Time and integer field codecs.

Renderers report positions and durations as colon-separated strings
("0:04:20") and numeric state variables as decimal text. Both are read
leniently and fail closed to zero.
"""

import re
from typing import Any

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_int(text: Any, default: int = 0) -> int:
    """
    Read the leading integer of a text field.

    Trailing garbage is ignored ("12abc" -> 12, "05.123" -> 5).

    Args:
        text: Field value from a notification or caller
        default: Value returned when no integer can be read

    Returns:
        Parsed integer or default
    """
    if isinstance(text, bool):
        return default
    if isinstance(text, int):
        return text
    if not isinstance(text, str):
        return default

    match = _LEADING_INT.match(text)
    if not match:
        return default
    try:
        return int(match.group(1))
    except ValueError:
        # Beyond the interpreter's int string conversion limit
        return default


def parse_time(formatted_time: Any) -> int:
    """
    Convert "H:MM:SS" (or any number of colon-separated fields) to seconds.

    The rightmost field counts seconds, each field to the left is worth 60
    times the next. Any unreadable field makes the whole value 0.
    """
    if not isinstance(formatted_time, str):
        return 0

    seconds = 0
    for power, chunk in enumerate(reversed(formatted_time.split(":"))):
        match = _LEADING_INT.match(chunk)
        if not match:
            return 0
        try:
            seconds += int(match.group(1)) * 60**power
        except ValueError:
            return 0
    return seconds


def format_time(seconds: int) -> str:
    """Convert seconds to "H:MM:SS". Hours are not padded."""
    remaining = max(int(seconds), 0)
    hours, remaining = divmod(remaining, 3600)
    minutes, secs = divmod(remaining, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
