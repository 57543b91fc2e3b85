from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..core.enums import TimesheetActionType, TimesheetStatus

_STATUS_COLORS = {
    TimesheetStatus.DRAFT: "bg-gray-100 text-gray-800",
    TimesheetStatus.SUBMITTED: "bg-blue-100 text-blue-800",
    TimesheetStatus.APPROVED: "bg-green-100 text-green-800",
    TimesheetStatus.PROCESSED: "bg-purple-100 text-purple-800",
    TimesheetStatus.REJECTED: "bg-red-100 text-red-800",
}


def format_hours(hours: Decimal) -> str:
    """Decimal hours as H:MM, e.g. Decimal('7.5') -> '7:30'."""
    minutes = int((hours * 60).to_integral_value())
    return f"{minutes // 60}:{minutes % 60:02d}"


@dataclass(frozen=True)
class TimeEntry:
    """One clock-in / clock-out span; open while clock_out_time is None."""

    entry_id: int
    user_id: int
    clock_in_time: datetime
    clock_out_time: Optional[datetime] = None
    break_minutes: int = 0
    status: str = "active"
    adjustment_reason: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.clock_out_time is None

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "user_id": self.user_id,
            "clock_in_time": self.clock_in_time,
            "clock_out_time": self.clock_out_time,
            "break_minutes": self.break_minutes,
            "status": self.status,
            "adjustment_reason": self.adjustment_reason,
        }


@dataclass(frozen=True)
class Timesheet:
    """Weekly (Sunday to Saturday) submission of a user's time."""

    timesheet_id: int
    user_id: int
    week_start_date: date
    week_end_date: date
    status: TimesheetStatus = TimesheetStatus.DRAFT
    total_hours: Decimal = Decimal("0")
    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    break_hours: Decimal = Decimal("0")
    notes: Optional[str] = None
    legal_acknowledgment: bool = False
    created_at: Optional[datetime] = None

    @property
    def can_be_submitted(self) -> bool:
        return self.status in (TimesheetStatus.DRAFT, TimesheetStatus.REJECTED)

    @property
    def can_be_withdrawn(self) -> bool:
        return self.status == TimesheetStatus.SUBMITTED

    @property
    def can_be_approved(self) -> bool:
        return self.status == TimesheetStatus.SUBMITTED

    @property
    def can_be_rejected(self) -> bool:
        return self.status in (TimesheetStatus.SUBMITTED, TimesheetStatus.APPROVED)

    @property
    def can_be_processed(self) -> bool:
        return self.status in (TimesheetStatus.DRAFT, TimesheetStatus.SUBMITTED, TimesheetStatus.APPROVED)

    @property
    def status_color(self) -> str:
        return _STATUS_COLORS[self.status]

    @property
    def week_label(self) -> str:
        start, end = self.week_start_date, self.week_end_date
        return f"{start.strftime('%b')} {start.day} - {end.strftime('%b')} {end.day}, {end.year}"

    def to_dict(self) -> dict:
        return {
            "id": self.timesheet_id,
            "user_id": self.user_id,
            "week_start_date": self.week_start_date,
            "week_end_date": self.week_end_date,
            "week_label": self.week_label,
            "status": self.status,
            "status_label": self.status.label,
            "status_color": self.status_color,
            "total_hours": self.total_hours,
            "regular_hours": self.regular_hours,
            "overtime_hours": self.overtime_hours,
            "break_hours": self.break_hours,
            "formatted_total_hours": format_hours(self.total_hours),
            "notes": self.notes,
            "legal_acknowledgment": self.legal_acknowledgment,
            "can_edit": self.can_be_submitted,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class TimesheetAction:
    action_id: int
    timesheet_id: int
    user_id: int
    action: TimesheetActionType
    notes: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.action_id,
            "timesheet_id": self.timesheet_id,
            "user_id": self.user_id,
            "action": self.action,
            "notes": self.notes,
            "metadata": self.metadata,
            "created_at": self.created_at,
        }
