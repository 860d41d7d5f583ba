"""Duration parsing for window sizes."""

import math
import re
from datetime import timedelta

from windowguard.exceptions import DurationFormatError

UNIT_MS = {
    "ms": 1,
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h|d)$")


def parse_duration(value: str | int | float | timedelta) -> int:
    """Convert a duration into whole milliseconds.

    Args:
        value: A duration string such as "10s", "1m", "2h", "1d" or "500ms",
            a number already expressed in milliseconds, or a timedelta.

    Returns:
        Duration in milliseconds, rounded up.

    Raises:
        DurationFormatError: If the value cannot be interpreted.

    Examples:
        >>> parse_duration("1.5m")
        90000
        >>> parse_duration(5000)
        5000
    """
    # bool is an int subclass
    if isinstance(value, bool):
        raise DurationFormatError(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return math.ceil(value)
    if isinstance(value, timedelta):
        return math.ceil(value.total_seconds() * 1000)
    if not isinstance(value, str):
        raise DurationFormatError(value)

    match = _DURATION_RE.match(value.strip())
    if match is None:
        raise DurationFormatError(value)

    amount = float(match.group(1))
    return math.ceil(amount * UNIT_MS[match.group(2)])
