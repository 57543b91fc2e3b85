from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from ..model import TimeEntry


@dataclass(frozen=True)
class WeeklyTotals:
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    break_hours: Decimal


class TimesheetCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked time)."""

    @abstractmethod
    def worked_minutes(self, entry: TimeEntry) -> int:
        raise NotImplementedError

    @abstractmethod
    def weekly_totals(self, entries: Sequence[TimeEntry]) -> WeeklyTotals:
        raise NotImplementedError
