from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import iter_dates, now_local, week_start_sunday
from ..common.validators import FieldErrors, read_date, read_int, read_str
from ..core.constants import HOURS_PER_PTO_DAY
from ..core.enums import TimesheetActionType, TimesheetStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..pto_requests.day_calculator import days_on
from ..pto_requests.repository import PtoRequestRepository
from ..pto_types.repository import PtoTypeRepository
from ..users.model import User
from .calculator.base import TimesheetCalculator
from .calculator.weekly_overtime_calculator import WeeklyOvertimeCalculator, minutes_to_hours
from .model import TimeEntry, Timesheet, TimesheetAction
from .repository import TimeEntryRepository, TimesheetRepository

logger = logging.getLogger(__name__)

LEGAL_ACKNOWLEDGMENT_TEXT = (
    "I hereby certify that the time recorded on this timesheet is true and accurate to the best of my "
    "knowledge. I understand that any false statements or misrepresentation of time worked may result in "
    "disciplinary action, up to and including termination of employment. I acknowledge that I have reviewed "
    "all time entries, break periods, and any adjustments made during this pay period."
)

_NOTES_MAX = 1000


def week_bounds(week_start: date) -> tuple[datetime, datetime]:
    start = week_start_sunday(week_start)
    return datetime.combine(start, time.min), datetime.combine(start + timedelta(days=6), time.max)


class TimesheetService:
    """Weekly timesheets built from clock entries and approved PTO.

    Status flow:
        draft/rejected -> submitted -> approved -> processed
        submitted -> draft (withdraw), submitted/approved -> rejected
    Every transition is written to the action history.
    """

    def __init__(
        self,
        entries: TimeEntryRepository,
        timesheets: TimesheetRepository,
        requests: PtoRequestRepository,
        types: PtoTypeRepository,
        *,
        calculator: Optional[TimesheetCalculator] = None,
    ):
        self._entries = entries
        self._timesheets = timesheets
        self._requests = requests
        self._types = types
        self._calculator = calculator or WeeklyOvertimeCalculator()

    # -------- Read side --------
    def get_timesheet(self, timesheet_id: int) -> Timesheet:
        timesheet = self._timesheets.get_by_id(int(timesheet_id))
        if not timesheet:
            raise NotFoundError("Timesheet not found.")
        return timesheet

    def week_view(self, user: User, week_start: Optional[date] = None, *, now: Optional[datetime] = None) -> dict:
        now = now or now_local()
        start = week_start_sunday(week_start or now.date())
        end = start + timedelta(days=6)
        range_start, range_end = week_bounds(start)

        entries = self._entries.list_for_user_between(user.user_id, range_start, range_end)
        pto_requests = self._requests.list_approved_overlapping(user.user_id, start, end)
        submission = self._timesheets.get_for_week(user.user_id, start)

        type_names: dict[int, str] = {}
        for r in pto_requests:
            if r.pto_type_id not in type_names:
                pto_type = self._types.get_by_id(r.pto_type_id)
                type_names[r.pto_type_id] = pto_type.name if pto_type else ""

        daily_data: list[dict] = []
        pto_hours_total = Decimal("0")
        for day in iter_dates(start, end):
            day_entries = [e for e in entries if e.clock_in_time.date() == day]
            totals = self._calculator.weekly_totals(day_entries)
            break_minutes = sum(int(e.break_minutes or 0) for e in day_entries)

            day_pto = []
            for r in pto_requests:
                share = days_on(day, r.start_date, r.end_date, r.start_time, r.end_time)
                if not share:
                    continue
                hours = share * HOURS_PER_PTO_DAY
                pto_hours_total += hours
                day_pto.append(
                    {
                        "id": r.request_id,
                        "type": type_names.get(r.pto_type_id, ""),
                        "hours": hours,
                        "start_time": r.start_time,
                        "end_time": r.end_time,
                    }
                )

            daily_data.append(
                {
                    "date": day,
                    "day_name": day.strftime("%A"),
                    "is_weekend": day.weekday() >= 5,
                    "total_hours": totals.total_hours,
                    "break_minutes": break_minutes,
                    "break_hours": totals.break_hours,
                    "entries": [
                        dict(e.to_dict(), total_hours=minutes_to_hours(self._calculator.worked_minutes(e)))
                        for e in day_entries
                    ],
                    "pto": day_pto,
                }
            )

        week_totals = self._calculator.weekly_totals(entries)
        return {
            "user": {"id": user.user_id, "name": user.name, "email": user.email},
            "week_info": {
                "start_date": start,
                "end_date": end,
                "display": f"{start.strftime('%b %d')} - {end.strftime('%b %d, %Y')}",
            },
            "submission": submission.to_dict() if submission else None,
            "daily_data": daily_data,
            "weekly_totals": {
                "total_hours": week_totals.total_hours,
                "regular_hours": week_totals.regular_hours,
                "overtime_hours": week_totals.overtime_hours,
                "break_hours": week_totals.break_hours,
                "pto_hours": pto_hours_total,
            },
            "can_submit": submission is None or submission.can_be_submitted,
            "needs_submission": submission is None or submission.status == TimesheetStatus.DRAFT,
        }

    def pending(self) -> Sequence[Timesheet]:
        return self._timesheets.list_by_status(TimesheetStatus.SUBMITTED)

    def history(self, timesheet_id: int) -> Sequence[TimesheetAction]:
        self.get_timesheet(timesheet_id)
        return self._timesheets.list_actions(int(timesheet_id))

    # -------- Transitions --------
    def _with_totals(self, timesheet: Timesheet) -> Timesheet:
        range_start, range_end = week_bounds(timesheet.week_start_date)
        entries = self._entries.list_for_user_between(timesheet.user_id, range_start, range_end)
        totals = self._calculator.weekly_totals(entries)
        return replace(
            timesheet,
            total_hours=totals.total_hours,
            regular_hours=totals.regular_hours,
            overtime_hours=totals.overtime_hours,
            break_hours=totals.break_hours,
        )

    def _record(
        self,
        timesheet: Timesheet,
        action: TimesheetActionType,
        *,
        actor: User,
        notes: Optional[str],
        now: datetime,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Timesheet:
        self._timesheets.save(timesheet)
        self._timesheets.add_action(
            TimesheetAction(
                action_id=0,
                timesheet_id=timesheet.timesheet_id,
                user_id=actor.user_id,
                action=action,
                notes=notes,
                metadata=metadata or {},
                created_at=now,
            )
        )
        logger.info(
            "Timesheet %s %s by user %s (week %s)",
            timesheet.timesheet_id,
            action.value,
            actor.user_id,
            timesheet.week_start_date,
        )
        return timesheet

    def submit(
        self,
        payload: Mapping[str, Any],
        *,
        actor: User,
        can_manage: bool = False,
        now: Optional[datetime] = None,
    ) -> Timesheet:
        now = now or now_local()
        errors = FieldErrors()
        week_start = read_date(payload, "week_start_date", errors, required=True)
        user_id = read_int(payload, "user_id", errors)
        notes = read_str(payload, "submission_notes", errors, max_length=_NOTES_MAX)
        read_str(payload, "legal_acknowledgment", errors, required=True)
        errors.raise_if_any()

        user_id = user_id or actor.user_id
        if user_id != actor.user_id and not can_manage:
            raise AuthorizationError("You do not have permission to submit timesheet for this user.")

        start = week_start_sunday(week_start)
        timesheet = self._timesheets.get_for_week(user_id, start)
        if timesheet and not timesheet.can_be_submitted:
            raise ValidationError("Timesheet has already been submitted and cannot be modified.")
        if not timesheet:
            draft = Timesheet(
                timesheet_id=0,
                user_id=user_id,
                week_start_date=start,
                week_end_date=start + timedelta(days=6),
                created_at=now,
            )
            timesheet = replace(draft, timesheet_id=self._timesheets.create(draft))

        timesheet = replace(
            self._with_totals(timesheet),
            status=TimesheetStatus.SUBMITTED,
            notes=notes,
            legal_acknowledgment=True,
        )
        return self._record(timesheet, TimesheetActionType.SUBMITTED, actor=actor, notes=notes, now=now)

    def withdraw(
        self,
        timesheet_id: int,
        payload: Mapping[str, Any],
        *,
        actor: User,
        can_manage: bool = False,
        now: Optional[datetime] = None,
    ) -> Timesheet:
        now = now or now_local()
        timesheet = self.get_timesheet(timesheet_id)
        if timesheet.user_id != actor.user_id and not can_manage:
            raise AuthorizationError("You can only withdraw your own timesheets.")

        errors = FieldErrors()
        reason = read_str(payload, "reason", errors, required=True, max_length=_NOTES_MAX)
        errors.raise_if_any()

        if not timesheet.can_be_withdrawn:
            raise ValidationError("Only submitted timesheets can be withdrawn.")

        timesheet = replace(timesheet, status=TimesheetStatus.DRAFT, legal_acknowledgment=False)
        return self._record(timesheet, TimesheetActionType.WITHDRAWN, actor=actor, notes=reason, now=now)

    def approve(
        self,
        timesheet_id: int,
        payload: Mapping[str, Any],
        *,
        approver: User,
        now: Optional[datetime] = None,
    ) -> Timesheet:
        now = now or now_local()
        timesheet = self.get_timesheet(timesheet_id)

        errors = FieldErrors()
        notes = read_str(payload, "approval_notes", errors, max_length=_NOTES_MAX)
        errors.raise_if_any()

        if not timesheet.can_be_approved:
            raise ValidationError("Only submitted timesheets can be approved.")

        timesheet = replace(self._with_totals(timesheet), status=TimesheetStatus.APPROVED)
        return self._record(timesheet, TimesheetActionType.APPROVED, actor=approver, notes=notes, now=now)

    def reject(
        self,
        timesheet_id: int,
        payload: Mapping[str, Any],
        *,
        approver: User,
        now: Optional[datetime] = None,
    ) -> Timesheet:
        now = now or now_local()
        timesheet = self.get_timesheet(timesheet_id)

        errors = FieldErrors()
        reason = read_str(payload, "rejection_reason", errors, required=True, max_length=_NOTES_MAX)
        notes = read_str(payload, "rejection_notes", errors, max_length=_NOTES_MAX)
        errors.raise_if_any()

        if not timesheet.can_be_rejected:
            raise ValidationError("Only submitted or approved timesheets can be rejected.")

        timesheet = replace(timesheet, status=TimesheetStatus.REJECTED)
        return self._record(
            timesheet,
            TimesheetActionType.REJECTED,
            actor=approver,
            notes=reason,
            now=now,
            metadata={"rejection_reason": reason, "rejection_notes": notes},
        )

    def process(
        self,
        timesheet_id: int,
        payload: Mapping[str, Any],
        *,
        actor: User,
        now: Optional[datetime] = None,
    ) -> Timesheet:
        now = now or now_local()
        timesheet = self.get_timesheet(timesheet_id)

        errors = FieldErrors()
        notes = read_str(payload, "notes", errors, max_length=_NOTES_MAX)
        errors.raise_if_any()

        if not timesheet.can_be_processed:
            raise ValidationError("This timesheet cannot be processed.")

        timesheet = replace(timesheet, status=TimesheetStatus.PROCESSED)
        return self._record(timesheet, TimesheetActionType.PROCESSED, actor=actor, notes=notes, now=now)

    # -------- Time clock --------
    def clock_in(self, user: User, *, now: Optional[datetime] = None) -> TimeEntry:
        now = now or now_local()
        if self._entries.get_active_for_user(user.user_id):
            raise ValidationError("You are already clocked in.")
        entry_id = self._entries.create(user_id=user.user_id, clock_in_time=now)
        logger.info("User %s clocked in at %s", user.user_id, now)
        return TimeEntry(entry_id=entry_id, user_id=user.user_id, clock_in_time=now)

    def clock_out(self, user: User, payload: Mapping[str, Any], *, now: Optional[datetime] = None) -> TimeEntry:
        now = now or now_local()
        errors = FieldErrors()
        break_minutes = read_int(payload, "break_minutes", errors, min_value=0) or 0
        errors.raise_if_any()

        entry = self._entries.get_active_for_user(user.user_id)
        if not entry:
            raise ValidationError("You are not clocked in.")
        if now < entry.clock_in_time:
            raise ValidationError("Clock out time must be after clock in time.")

        self._entries.close(entry.entry_id, clock_out_time=now, break_minutes=break_minutes)
        logger.info("User %s clocked out at %s", user.user_id, now)
        return replace(entry, clock_out_time=now, break_minutes=break_minutes, status="completed")
