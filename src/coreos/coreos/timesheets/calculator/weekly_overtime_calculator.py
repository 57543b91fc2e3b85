from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from ...core.constants import WEEKLY_OVERTIME_THRESHOLD_HOURS
from ..model import TimeEntry
from .base import TimesheetCalculator, WeeklyTotals

_CENTS = Decimal("0.01")


def minutes_to_hours(minutes: int) -> Decimal:
    return (Decimal(minutes) / Decimal(60)).quantize(_CENTS, rounding=ROUND_HALF_UP)


class WeeklyOvertimeCalculator(TimesheetCalculator):
    """(out - in) - break_minutes per entry, not below 0; hours past the
    weekly threshold are overtime."""

    def __init__(self, threshold_hours: Decimal = WEEKLY_OVERTIME_THRESHOLD_HOURS):
        self._threshold = Decimal(threshold_hours)

    def worked_minutes(self, entry: TimeEntry) -> int:
        if not entry.clock_out_time:
            return 0
        minutes = int((entry.clock_out_time - entry.clock_in_time).total_seconds() // 60)
        minutes -= int(entry.break_minutes or 0)
        return max(minutes, 0)

    def weekly_totals(self, entries: Sequence[TimeEntry]) -> WeeklyTotals:
        total = minutes_to_hours(sum(self.worked_minutes(e) for e in entries))
        breaks = minutes_to_hours(sum(int(e.break_minutes or 0) for e in entries))
        regular = min(total, self._threshold)
        return WeeklyTotals(
            total_hours=total,
            regular_hours=regular,
            overtime_hours=total - regular,
            break_hours=breaks,
        )
