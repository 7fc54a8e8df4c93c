"""Time-of-day and duration arithmetic on ``HH:MM`` wall-clock values.

All functions are pure. Times are converted to minutes since midnight
for comparison; ranges are half-open, so touching endpoints never overlap.
"""

import math
import re
from datetime import time
from typing import Union

from barbershop.errors import FormatError

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^([0-9]{2}):([0-9]{2})$")

TimeLike = Union[str, time]


def to_minutes(value: TimeLike, allow_end_of_day: bool = False) -> int:
    """Parse ``HH:MM`` (or a ``datetime.time``) into minutes since midnight.

    ``"24:00"`` is accepted only when ``allow_end_of_day`` is set, so a
    shift may close exactly at midnight.

    Raises:
        FormatError: If the value is not a valid 24-hour time.
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        raise FormatError(f"Time must be a string in HH:MM format, got {value!r}")

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise FormatError(f"Time must be in HH:MM format, got {value!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if allow_end_of_day and hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if hours > 23 or minutes > 59:
        raise FormatError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def from_minutes(total: int) -> str:
    """Format minutes since midnight as ``HH:MM``; 1440 renders as ``24:00``."""
    if total == MINUTES_PER_DAY:
        return "24:00"
    total %= MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def add_minutes(value: TimeLike, minutes: int) -> str:
    """Add minutes to a time of day, wrapping within the same 24h day."""
    total = (to_minutes(value) + minutes) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap test for ``[start_a, end_a)`` and ``[start_b, end_b)``."""
    return start_a < end_b and end_a > start_b


def round_up_to_interval(minutes: float, interval: int) -> int:
    """Round up to the next multiple of ``interval`` (exact multiples stay put)."""
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    return int(math.ceil(minutes / interval)) * interval
