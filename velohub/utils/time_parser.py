"""
Time parsing utilities for upstream leaderboard rows.

Handles conversion between lap time strings and integer milliseconds, and
coercion of loosely typed user identities.
"""

from typing import Any, Optional
import math


def _digits(segment: str) -> Optional[int]:
    """Parse a run of ASCII digits, rejecting signs, blanks and unicode digits."""
    if not segment or not segment.isascii() or not segment.isdigit():
        return None
    return int(segment)


def parse_lap_time(time_str: Any) -> Optional[int]:
    """
    Parse a lap time string into total milliseconds.

    Supported formats:
    - H:MM:SS.fff (e.g., 1:02:03.456)
    - MM:SS.fff (e.g., 2:03.456)
    - SS.fff (e.g., 03.456)

    The fractional part is optional and holds the millisecond remainder.

    Args:
        time_str: Time string to parse, or an int of whole seconds

    Returns:
        Total milliseconds, or None when the value is unparseable
    """
    # Whole seconds may arrive as a bare int
    if isinstance(time_str, int) and not isinstance(time_str, bool):
        time_str = str(time_str)
    if not isinstance(time_str, str):
        return None

    parts = time_str.strip().split(':')
    if len(parts) > 3:
        return None

    # Seconds segment carries the optional fraction
    seconds_part = parts[-1]
    if seconds_part.count('.') > 1:
        return None
    whole, _, fraction = seconds_part.partition('.')
    seconds = _digits(whole)
    if seconds is None:
        return None
    if fraction:
        if len(fraction) > 3:
            return None
        milliseconds = _digits(fraction)
        if milliseconds is None:
            return None
    else:
        milliseconds = 0

    hours = minutes = 0
    if len(parts) == 3:
        hours = _digits(parts[0])
        minutes = _digits(parts[1])
    elif len(parts) == 2:
        minutes = _digits(parts[0])
    if hours is None or minutes is None:
        return None

    return (((hours * 60 + minutes) * 60) + seconds) * 1000 + milliseconds


def format_lap_time(milliseconds: int) -> str:
    """
    Format milliseconds into a lap time string.

    Args:
        milliseconds: Total milliseconds

    Returns:
        Formatted time string (e.g., "2:03.456" or "1:02:03.456")
    """
    if milliseconds < 0:
        raise ValueError("Negative milliseconds not allowed")

    total_seconds, millis = divmod(int(milliseconds), 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}.{millis:03d}"
    return f"{minutes}:{secs:02d}.{millis:03d}"


def coerce_user_id(value: Any) -> Optional[int]:
    """Coerce an upstream identity into an int, or None if it is not a finite whole number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value or '_' in value:
            return None
        try:
            value = float(value) if any(c in value for c in '.eE') else int(value)
        except ValueError:
            return None
        if isinstance(value, int):
            return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value) or not value.is_integer():
            return None
        return int(value)
    return None
