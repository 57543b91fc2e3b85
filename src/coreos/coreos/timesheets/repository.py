from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import TimesheetStatus
from .model import TimeEntry, Timesheet, TimesheetAction


class TimeEntryRepository(Protocol):
    def list_for_user_between(self, user_id: int, start: datetime, end: datetime) -> Sequence[TimeEntry]:
        """Entries whose clock_in_time falls inside [start, end]."""
        raise NotImplementedError

    def get_active_for_user(self, user_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def create(self, *, user_id: int, clock_in_time: datetime) -> int:
        raise NotImplementedError

    def close(self, entry_id: int, *, clock_out_time: datetime, break_minutes: int) -> None:
        raise NotImplementedError


class TimesheetRepository(Protocol):
    def get_by_id(self, timesheet_id: int) -> Optional[Timesheet]:
        raise NotImplementedError

    def get_for_week(self, user_id: int, week_start: date) -> Optional[Timesheet]:
        raise NotImplementedError

    def list_by_status(self, status: TimesheetStatus, *, limit: int = 200) -> Sequence[Timesheet]:
        raise NotImplementedError

    def create(self, timesheet: Timesheet) -> int:
        raise NotImplementedError

    def save(self, timesheet: Timesheet) -> None:
        raise NotImplementedError

    def add_action(self, action: TimesheetAction) -> int:
        raise NotImplementedError

    def list_actions(self, timesheet_id: int) -> Sequence[TimesheetAction]:
        raise NotImplementedError
