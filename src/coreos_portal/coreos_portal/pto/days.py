from __future__ import annotations

from datetime import date, timedelta

from ..common.datetime_utils import is_weekend
from ..core.enums import DayPart

_FIRST_DAY = {DayPart.FULL_DAY: 1.0, DayPart.MORNING: 1.0, DayPart.AFTERNOON: 0.5}
_LAST_DAY = {DayPart.FULL_DAY: 1.0, DayPart.MORNING: 0.5, DayPart.AFTERNOON: 1.0}


def calculate_total_days(start: date, end: date, start_time: DayPart, end_time: DayPart) -> float:
    """Working days covered by a request.

    A morning start takes the whole first day, an afternoon start only its
    second half; a morning end stops at noon. Weekends in between are not
    counted, the first and last day always are. Returns 0.0 for an invalid
    same-day combination (afternoon to morning, full day to half day).
    """

    if start == end:
        if start_time == end_time == DayPart.FULL_DAY:
            return 1.0
        if start_time == end_time and start_time in (DayPart.MORNING, DayPart.AFTERNOON):
            return 0.5
        if start_time == DayPart.MORNING and end_time == DayPart.AFTERNOON:
            return 1.0
        return 0.0

    total = _FIRST_DAY[start_time]

    current = start + timedelta(days=1)
    while current < end:
        if not is_weekend(current):
            total += 1.0
        current += timedelta(days=1)

    return total + _LAST_DAY[end_time]
