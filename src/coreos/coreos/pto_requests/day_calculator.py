from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from ..common.datetime_utils import is_weekday
from ..core.enums import DayPortion

ONE = Decimal("1")
HALF = Decimal("0.5")
ZERO = Decimal("0")

# Same-day combinations of (start_time, end_time); anything else is invalid.
_SAME_DAY = {
    (DayPortion.FULL_DAY, DayPortion.FULL_DAY): ONE,
    (DayPortion.MORNING, DayPortion.MORNING): HALF,
    (DayPortion.AFTERNOON, DayPortion.AFTERNOON): HALF,
    (DayPortion.MORNING, DayPortion.AFTERNOON): ONE,
}

_FIRST_DAY = {DayPortion.FULL_DAY: ONE, DayPortion.MORNING: ONE, DayPortion.AFTERNOON: HALF}
_LAST_DAY = {DayPortion.FULL_DAY: ONE, DayPortion.MORNING: HALF, DayPortion.AFTERNOON: ONE}


def calculate_total_days(
    start: date,
    end: date,
    start_time: DayPortion = DayPortion.FULL_DAY,
    end_time: DayPortion = DayPortion.FULL_DAY,
) -> Decimal:
    """Days of PTO a request consumes.

    Starting in the afternoon or ending in the morning counts as half a day;
    weekend days strictly between the first and last day are not counted.
    """
    start_time = DayPortion(start_time)
    end_time = DayPortion(end_time)

    if start == end:
        return _SAME_DAY.get((start_time, end_time), ZERO)

    total = _FIRST_DAY[start_time]
    current = start + timedelta(days=1)
    while current < end:
        if is_weekday(current):
            total += ONE
        current += timedelta(days=1)
    return total + _LAST_DAY[end_time]


def days_on(
    day: date,
    start: date,
    end: date,
    start_time: DayPortion = DayPortion.FULL_DAY,
    end_time: DayPortion = DayPortion.FULL_DAY,
) -> Decimal:
    """Share of a request that falls on `day`; the per-day values add up to calculate_total_days."""
    start_time = DayPortion(start_time)
    end_time = DayPortion(end_time)
    if day < start or day > end:
        return ZERO
    if start == end:
        return _SAME_DAY.get((start_time, end_time), ZERO)
    if day == start:
        return _FIRST_DAY[start_time]
    if day == end:
        return _LAST_DAY[end_time]
    return ONE if is_weekday(day) else ZERO
