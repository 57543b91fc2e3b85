from __future__ import annotations

import json
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import TimesheetActionType, TimesheetStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, as_decimal, db_cursor, fetchall, fetchone, json_load
from .model import TimeEntry, Timesheet, TimesheetAction
from .repository import TimeEntryRepository, TimesheetRepository

_ENTRY_COLUMNS = "entry_id, user_id, clock_in_time, clock_out_time, break_minutes, status, adjustment_reason"
_TIMESHEET_COLUMNS = """
    timesheet_id, user_id, week_start_date, week_end_date, status, total_hours, regular_hours,
    overtime_hours, break_hours, notes, legal_acknowledgment, created_at
"""


def _to_entry(r) -> TimeEntry:
    return TimeEntry(
        entry_id=int(r["entry_id"]),
        user_id=int(r["user_id"]),
        clock_in_time=r["clock_in_time"],
        clock_out_time=r.get("clock_out_time"),
        break_minutes=int(r.get("break_minutes") or 0),
        status=r["status"],
        adjustment_reason=r.get("adjustment_reason"),
    )


def _to_timesheet(r) -> Timesheet:
    return Timesheet(
        timesheet_id=int(r["timesheet_id"]),
        user_id=int(r["user_id"]),
        week_start_date=as_date(r["week_start_date"]),
        week_end_date=as_date(r["week_end_date"]),
        status=TimesheetStatus(r["status"]),
        total_hours=as_decimal(r["total_hours"]),
        regular_hours=as_decimal(r["regular_hours"]),
        overtime_hours=as_decimal(r["overtime_hours"]),
        break_hours=as_decimal(r["break_hours"]),
        notes=r.get("notes"),
        legal_acknowledgment=bool(r["legal_acknowledgment"]),
        created_at=r.get("created_at"),
    )


class MySQLTimeEntryRepository(TimeEntryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_user_between(self, user_id: int, start: datetime, end: datetime) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS} FROM time_entries
                WHERE user_id=%s AND clock_in_time BETWEEN %s AND %s
                ORDER BY clock_in_time
                """,
                (int(user_id), start, end),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def get_active_for_user(self, user_id: int) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS} FROM time_entries
                WHERE user_id=%s AND status='active' AND clock_out_time IS NULL
                ORDER BY clock_in_time DESC LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def create(self, *, user_id: int, clock_in_time: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO time_entries (user_id, clock_in_time, status) VALUES (%s, %s, 'active')",
                (int(user_id), clock_in_time),
            )
            return int(cur.lastrowid)

    def close(self, entry_id: int, *, clock_out_time: datetime, break_minutes: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries SET clock_out_time=%s, break_minutes=%s, status='completed'
                WHERE entry_id=%s
                """,
                (clock_out_time, int(break_minutes), int(entry_id)),
            )


class MySQLTimesheetRepository(TimesheetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, timesheet_id: int) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TIMESHEET_COLUMNS} FROM timesheets WHERE timesheet_id=%s", (int(timesheet_id),))
            r = fetchone(cur)
            return _to_timesheet(r) if r else None

    def get_for_week(self, user_id: int, week_start: date) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TIMESHEET_COLUMNS} FROM timesheets WHERE user_id=%s AND week_start_date=%s",
                (int(user_id), week_start),
            )
            r = fetchone(cur)
            return _to_timesheet(r) if r else None

    def list_by_status(self, status: TimesheetStatus, *, limit: int = 200) -> Sequence[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TIMESHEET_COLUMNS} FROM timesheets
                WHERE status=%s ORDER BY week_start_date DESC, user_id LIMIT %s
                """,
                (status.value, int(limit)),
            )
            return [_to_timesheet(r) for r in fetchall(cur)]

    def create(self, timesheet: Timesheet) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO timesheets
                    (user_id, week_start_date, week_end_date, status, total_hours, regular_hours,
                     overtime_hours, break_hours, notes, legal_acknowledgment)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    timesheet.user_id,
                    timesheet.week_start_date,
                    timesheet.week_end_date,
                    timesheet.status.value,
                    timesheet.total_hours,
                    timesheet.regular_hours,
                    timesheet.overtime_hours,
                    timesheet.break_hours,
                    timesheet.notes,
                    1 if timesheet.legal_acknowledgment else 0,
                ),
            )
            return int(cur.lastrowid)

    def save(self, timesheet: Timesheet) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE timesheets
                SET status=%s, total_hours=%s, regular_hours=%s, overtime_hours=%s, break_hours=%s,
                    notes=%s, legal_acknowledgment=%s
                WHERE timesheet_id=%s
                """,
                (
                    timesheet.status.value,
                    timesheet.total_hours,
                    timesheet.regular_hours,
                    timesheet.overtime_hours,
                    timesheet.break_hours,
                    timesheet.notes,
                    1 if timesheet.legal_acknowledgment else 0,
                    timesheet.timesheet_id,
                ),
            )

    def add_action(self, action: TimesheetAction) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO timesheet_actions (timesheet_id, user_id, action, notes, metadata, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    action.timesheet_id,
                    action.user_id,
                    action.action.value,
                    action.notes,
                    json.dumps(action.metadata, default=str) if action.metadata else None,
                    action.created_at,
                ),
            )
            return int(cur.lastrowid)

    def list_actions(self, timesheet_id: int) -> Sequence[TimesheetAction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT action_id, timesheet_id, user_id, action, notes, metadata, created_at
                FROM timesheet_actions WHERE timesheet_id=%s ORDER BY created_at, action_id
                """,
                (int(timesheet_id),),
            )
            return [
                TimesheetAction(
                    action_id=int(r["action_id"]),
                    timesheet_id=int(r["timesheet_id"]),
                    user_id=int(r["user_id"]),
                    action=TimesheetActionType(r["action"]),
                    notes=r.get("notes"),
                    metadata=json_load(r.get("metadata")) or {},
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
