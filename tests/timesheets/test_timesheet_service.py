from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from src.coreos.coreos.core.enums import DayPortion, RequestStatus, TimesheetActionType, TimesheetStatus
from src.coreos.coreos.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.coreos.coreos.pto_requests.model import PtoRequest
from src.coreos.coreos.pto_types.model import PtoType
from src.coreos.coreos.timesheets.model import TimeEntry, Timesheet
from src.coreos.coreos.timesheets.service import TimesheetService, week_bounds
from src.coreos.coreos.users.model import User
from tests.fakes import FakeRequestsRepo, FakeTimeEntriesRepo, FakeTimesheetsRepo, FakeTypesRepo

ANA = User(user_id=1, name="Ana", email="ana@example.com", password_hash="x")
BEN = User(user_id=2, name="Ben", email="ben@example.com", password_hash="x")

# Sunday
WEEK = date(2025, 3, 9)
NOW = datetime(2025, 3, 15, 18, 0)


def _entry(entry_id: int, day: int, start_hour: int, end_hour: int, break_minutes: int = 0) -> TimeEntry:
    return TimeEntry(
        entry_id=entry_id,
        user_id=1,
        clock_in_time=datetime(2025, 3, day, start_hour, 0),
        clock_out_time=datetime(2025, 3, day, end_hour, 0),
        break_minutes=break_minutes,
        status="completed",
    )


def _service(entries=(), timesheets=(), requests=()):
    entries_repo = FakeTimeEntriesRepo(entries)
    timesheets_repo = FakeTimesheetsRepo(timesheets)
    service = TimesheetService(
        entries_repo,
        timesheets_repo,
        FakeRequestsRepo(requests=requests),
        FakeTypesRepo([PtoType(pto_type_id=1, name="Vacation", code="VAC")]),
    )
    return service, entries_repo, timesheets_repo


def _submit(service, **payload):
    data = {"week_start_date": "2025-03-09", "legal_acknowledgment": "1"}
    data.update(payload)
    return service.submit(data, actor=ANA, now=NOW)


def test_week_bounds_start_on_sunday():
    start, end = week_bounds(date(2025, 3, 12))
    assert start == datetime(2025, 3, 9, 0, 0)
    assert end.date() == date(2025, 3, 15)


def test_week_view_combines_entries_and_pto():
    pto = PtoRequest(
        request_id=7,
        request_number="PTO-1-1",
        user_id=1,
        pto_type_id=1,
        start_date=date(2025, 3, 13),
        end_date=date(2025, 3, 14),
        total_days=Decimal("1.5"),
        status=RequestStatus.APPROVED,
        end_time=DayPortion.MORNING,
    )
    service, _, _ = _service(entries=[_entry(1, 10, 8, 17, 60), _entry(2, 11, 8, 12)], requests=[pto])

    view = service.week_view(ANA, date(2025, 3, 12), now=NOW)

    assert view["week_info"]["start_date"] == WEEK
    assert view["week_info"]["display"] == "Mar 09 - Mar 15, 2025"
    assert len(view["daily_data"]) == 7
    monday = view["daily_data"][1]
    assert monday["day_name"] == "Monday"
    assert monday["total_hours"] == Decimal("8.00")
    assert monday["entries"][0]["total_hours"] == Decimal("8.00")
    thursday, friday = view["daily_data"][4], view["daily_data"][5]
    assert thursday["pto"][0]["hours"] == Decimal("8")
    assert friday["pto"][0]["hours"] == Decimal("4.0")
    assert view["weekly_totals"]["total_hours"] == Decimal("12.00")
    assert view["weekly_totals"]["pto_hours"] == Decimal("12")
    assert view["submission"] is None
    assert view["can_submit"] and view["needs_submission"]


def test_submit_creates_timesheet_with_totals():
    service, _, timesheets = _service(entries=[_entry(1, 10, 8, 17, 60)])

    timesheet = _submit(service, submission_notes="All good")

    assert timesheet.status == TimesheetStatus.SUBMITTED
    assert timesheet.week_start_date == WEEK
    assert timesheet.week_end_date == date(2025, 3, 15)
    assert timesheet.total_hours == Decimal("8.00")
    assert timesheet.legal_acknowledgment
    assert timesheets.get_for_week(1, WEEK).status == TimesheetStatus.SUBMITTED
    [action] = service.history(timesheet.timesheet_id)
    assert action.action == TimesheetActionType.SUBMITTED
    assert action.notes == "All good"


def test_submit_requires_acknowledgment():
    service, _, _ = _service()
    with pytest.raises(ValidationError) as exc:
        service.submit({"week_start_date": "2025-03-09"}, actor=ANA, now=NOW)
    assert "legal_acknowledgment" in exc.value.errors


def test_submit_for_someone_else_needs_manage_permission():
    service, _, _ = _service()
    with pytest.raises(AuthorizationError):
        service.submit({"week_start_date": "2025-03-09", "legal_acknowledgment": "1", "user_id": 2}, actor=ANA, now=NOW)

    timesheet = service.submit(
        {"week_start_date": "2025-03-09", "legal_acknowledgment": "1", "user_id": 2},
        actor=ANA,
        can_manage=True,
        now=NOW,
    )
    assert timesheet.user_id == 2


def test_submitted_timesheet_cannot_be_resubmitted():
    service, _, _ = _service()
    _submit(service)
    with pytest.raises(ValidationError, match="already been submitted"):
        _submit(service)


def test_withdraw_returns_to_draft():
    service, _, _ = _service()
    timesheet = _submit(service)

    with pytest.raises(AuthorizationError):
        service.withdraw(timesheet.timesheet_id, {"reason": "oops"}, actor=BEN, now=NOW)
    with pytest.raises(ValidationError):
        service.withdraw(timesheet.timesheet_id, {}, actor=ANA, now=NOW)

    withdrawn = service.withdraw(timesheet.timesheet_id, {"reason": "Forgot Friday"}, actor=ANA, now=NOW)
    assert withdrawn.status == TimesheetStatus.DRAFT
    assert not withdrawn.legal_acknowledgment

    with pytest.raises(ValidationError, match="Only submitted timesheets can be withdrawn."):
        service.withdraw(timesheet.timesheet_id, {"reason": "again"}, actor=ANA, now=NOW)


def test_approve_reject_process_flow():
    service, _, _ = _service()
    timesheet = _submit(service)

    approved = service.approve(timesheet.timesheet_id, {"approval_notes": "Thanks"}, approver=BEN, now=NOW)
    assert approved.status == TimesheetStatus.APPROVED
    with pytest.raises(ValidationError, match="Only submitted timesheets can be approved."):
        service.approve(timesheet.timesheet_id, {}, approver=BEN, now=NOW)

    with pytest.raises(ValidationError) as exc:
        service.reject(timesheet.timesheet_id, {}, approver=BEN, now=NOW)
    assert "rejection_reason" in exc.value.errors
    rejected = service.reject(
        timesheet.timesheet_id,
        {"rejection_reason": "Missing hours", "rejection_notes": "Wednesday"},
        approver=BEN,
        now=NOW,
    )
    assert rejected.status == TimesheetStatus.REJECTED
    assert service.history(timesheet.timesheet_id)[-1].metadata == {
        "rejection_reason": "Missing hours",
        "rejection_notes": "Wednesday",
    }

    with pytest.raises(ValidationError, match="cannot be processed"):
        service.process(timesheet.timesheet_id, {}, actor=BEN, now=NOW)

    resubmitted = _submit(service)
    processed = service.process(resubmitted.timesheet_id, {"notes": "Payroll run"}, actor=BEN, now=NOW)
    assert processed.status == TimesheetStatus.PROCESSED
    actions = [a.action for a in service.history(timesheet.timesheet_id)]
    assert actions == [
        TimesheetActionType.SUBMITTED,
        TimesheetActionType.APPROVED,
        TimesheetActionType.REJECTED,
        TimesheetActionType.SUBMITTED,
        TimesheetActionType.PROCESSED,
    ]


def test_pending_lists_submitted_timesheets():
    draft = Timesheet(timesheet_id=1, user_id=2, week_start_date=WEEK, week_end_date=date(2025, 3, 15))
    service, _, _ = _service(timesheets=[draft])
    submitted = _submit(service)
    assert [t.timesheet_id for t in service.pending()] == [submitted.timesheet_id]


def test_unknown_timesheet():
    service, _, _ = _service()
    with pytest.raises(NotFoundError, match="Timesheet not found."):
        service.history(404)


def test_clock_in_and_out():
    service, entries, _ = _service()
    clock_in = datetime(2025, 3, 10, 8, 0)

    entry = service.clock_in(ANA, now=clock_in)
    assert entry.is_active
    with pytest.raises(ValidationError, match="already clocked in"):
        service.clock_in(ANA, now=clock_in)

    with pytest.raises(ValidationError, match="after clock in"):
        service.clock_out(ANA, {}, now=datetime(2025, 3, 10, 7, 0))

    closed = service.clock_out(ANA, {"break_minutes": "30"}, now=datetime(2025, 3, 10, 16, 30))
    assert closed.break_minutes == 30
    assert entries.get_active_for_user(1) is None
    with pytest.raises(ValidationError, match="not clocked in"):
        service.clock_out(ANA, {}, now=datetime(2025, 3, 10, 17, 0))


def test_clock_out_rejects_negative_break():
    service, _, _ = _service()
    service.clock_in(ANA, now=datetime(2025, 3, 10, 8, 0))
    with pytest.raises(ValidationError) as exc:
        service.clock_out(ANA, {"break_minutes": -5}, now=datetime(2025, 3, 10, 16, 0))
    assert "break_minutes" in exc.value.errors
