from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def sunday_index(d: date) -> int:
    """Day of week with Sunday=0 ... Saturday=6."""
    return (d.weekday() + 1) % 7


def is_weekday(d: date) -> bool:
    return d.weekday() < 5


def week_start_sunday(d: date) -> date:
    return d - timedelta(days=sunday_index(d))


def format_long_date(d: date) -> str:
    """e.g. 'Jan 15, 2025'."""
    return d.strftime("%b %d, %Y")


def format_day_label(d: date) -> str:
    """e.g. 'Friday, Jan 15'."""
    return d.strftime("%A, %b %d")


def years_between(start: date, end: date) -> int:
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return max(years, 0)
