"""
Wall-clock time-of-day parsing.

Timetable rows store times as zero-padded 24-hour strings. The hosted
database returns `time` columns with seconds ("09:00:00"), admin forms send
"09:00"; both are accepted and seconds are ignored for display.
"""
import re
from typing import Any, Optional, Tuple

from portal.core.exceptions import MalformedTimeValueError

CLOCK_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::[0-5]\d)?$")


def parse_clock_time(value: Any, field: Optional[str] = None) -> Tuple[int, str]:
    """
    Split an HH:MM value into (hour, minutes).

    Minutes are returned as the input two-character string so callers can
    pass them through unchanged.

    Raises:
        MalformedTimeValueError: value is not a zero-padded HH:MM string
    """
    if not isinstance(value, str):
        raise MalformedTimeValueError(value, field)

    match = CLOCK_TIME_PATTERN.match(value)
    if not match:
        raise MalformedTimeValueError(value, field)

    return int(match.group(1)), match.group(2)


def normalize_clock_time(value: Any, field: Optional[str] = None) -> str:
    """Return the HH:MM part of a valid time value"""
    hour, minutes = parse_clock_time(value, field)
    return f"{hour:02d}:{minutes}"
