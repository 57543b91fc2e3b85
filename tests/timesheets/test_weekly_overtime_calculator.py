from datetime import datetime
from decimal import Decimal

from src.coreos.coreos.timesheets.calculator.weekly_overtime_calculator import WeeklyOvertimeCalculator, minutes_to_hours
from src.coreos.coreos.timesheets.model import TimeEntry, format_hours


def _entry(day: int, start_hour: int, end_hour: int, break_minutes: int = 0) -> TimeEntry:
    return TimeEntry(
        entry_id=day,
        user_id=1,
        clock_in_time=datetime(2025, 3, day, start_hour, 0),
        clock_out_time=datetime(2025, 3, day, end_hour, 0),
        break_minutes=break_minutes,
    )


def test_worked_minutes_subtracts_break():
    calc = WeeklyOvertimeCalculator()
    assert calc.worked_minutes(_entry(10, 8, 17, break_minutes=30)) == 8 * 60 + 30


def test_open_entry_counts_nothing():
    calc = WeeklyOvertimeCalculator()
    entry = TimeEntry(entry_id=1, user_id=1, clock_in_time=datetime(2025, 3, 10, 8, 0))
    assert entry.is_active
    assert calc.worked_minutes(entry) == 0


def test_break_longer_than_shift_is_clamped():
    calc = WeeklyOvertimeCalculator()
    assert calc.worked_minutes(_entry(10, 8, 9, break_minutes=90)) == 0


def test_hours_past_forty_are_overtime():
    calc = WeeklyOvertimeCalculator()
    entries = [_entry(day, 7, 17, break_minutes=60) for day in range(10, 15)]

    totals = calc.weekly_totals(entries)

    assert totals.total_hours == Decimal("45.00")
    assert totals.regular_hours == Decimal("40")
    assert totals.overtime_hours == Decimal("5.00")
    assert totals.break_hours == Decimal("5.00")


def test_custom_threshold():
    calc = WeeklyOvertimeCalculator(threshold_hours=Decimal("8"))
    totals = calc.weekly_totals([_entry(10, 8, 18)])
    assert (totals.regular_hours, totals.overtime_hours) == (Decimal("8"), Decimal("2.00"))


def test_hour_formatting():
    assert minutes_to_hours(50) == Decimal("0.83")
    assert format_hours(Decimal("7.5")) == "7:30"
    assert format_hours(Decimal("0")) == "0:00"
