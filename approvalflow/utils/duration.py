"""
Duration parsing utilities.

Supports duration strings like:
- "30s" - 30 seconds
- "5m" - 5 minutes
- "2h" - 2 hours
- "3d" - 3 days
- "1w" - 1 week
"""

import re
from datetime import timedelta
from typing import Union

_MULTIPLIERS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def parse_duration(duration: Union[str, int, timedelta]) -> int:
    """
    Parse duration to whole seconds.

    Integers are returned unchanged, including zero and negative values;
    callers decide what a non-positive duration means. A timedelta with a
    fractional part is rejected rather than truncated.

    Args:
        duration: Duration as:
            - str: Duration string ("5s", "2m", "1h")
            - int: Seconds
            - timedelta: Python timedelta

    Returns:
        Number of seconds

    Raises:
        ValueError: If the string format is invalid, or a timedelta is not
            a whole number of seconds
        TypeError: If the value has an unsupported type

    Examples:
        >>> parse_duration("30s")
        30
        >>> parse_duration(timedelta(minutes=1))
        60
        >>> parse_duration(-5)
        -5
    """
    # bool is an int subclass but never a meaningful duration
    if isinstance(duration, bool):
        raise TypeError("Duration must be str, int or timedelta, got bool")

    if isinstance(duration, str):
        return parse_duration_string(duration)

    if isinstance(duration, int):
        return duration

    if isinstance(duration, timedelta):
        seconds = duration.total_seconds()
        if not seconds.is_integer():
            raise ValueError(f"Duration must be a whole number of seconds, got {seconds}s")
        return int(seconds)

    raise TypeError(
        f"Duration must be str, int or timedelta, got {type(duration).__name__}"
    )


def duration_seconds(duration: Union[str, int, float, timedelta]) -> float:
    """
    Convert a duration to seconds, keeping fractions.

    Used for deadlines and backoff where sub-second values are meaningful.

    Examples:
        >>> duration_seconds(timedelta(milliseconds=500))
        0.5
        >>> duration_seconds("2m")
        120.0
    """
    if isinstance(duration, float):
        return duration
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(parse_duration(duration))


def parse_duration_string(duration: str) -> int:
    """
    Parse duration string to seconds.

    A bare number is read as seconds.

    Examples:
        >>> parse_duration_string("5m")
        300
        >>> parse_duration_string("45")
        45
    """
    match = re.match(r"^(\d+)([smhdw]?)$", duration.lower().strip())

    if not match:
        raise ValueError(
            f"Invalid duration format: '{duration}'. "
            f"Expected format: <number><unit> where unit is s/m/h/d/w "
            f"(e.g., '30s', '5m', '2h', '3d', '1w')"
        )

    value_str, unit = match.groups()
    return int(value_str) * _MULTIPLIERS[unit or "s"]


def format_duration(seconds: Union[int, float]) -> str:
    """
    Format seconds as a short human-readable duration.

    Examples:
        >>> format_duration(30)
        '30s'
        >>> format_duration(7200)
        '2h'
        >>> format_duration(90)
        '90s'
    """
    seconds = int(seconds)
    for unit in ("w", "d", "h", "m"):
        size = _MULTIPLIERS[unit]
        if seconds >= size and seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"
