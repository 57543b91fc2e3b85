from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..common.datetime_utils import format_long_date, iter_dates, sunday_index
from ..core.enums import RestrictionType
from ..users.model import User

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True)
class PtoBlackout:
    """A period during which PTO requests are blocked, limited or flagged.

    Recurring blackouts ignore start_date/end_date and instead apply to the
    weekdays in `recurring_days` (0=Sunday ... 6=Saturday), optionally bounded
    by recurring_start_date / recurring_end_date.
    """

    blackout_id: int
    name: str
    start_date: date
    end_date: date
    description: Optional[str] = None
    position_id: Optional[int] = None
    department_ids: tuple[int, ...] = ()
    user_ids: tuple[int, ...] = ()
    is_company_wide: bool = False
    is_holiday: bool = False
    is_strict: bool = False
    allow_emergency_override: bool = False
    restriction_type: RestrictionType = RestrictionType.FULL_BLOCK
    max_requests_allowed: Optional[int] = None
    pto_type_ids: tuple[int, ...] = ()
    is_active: bool = True
    is_recurring: bool = False
    recurring_days: tuple[int, ...] = ()
    recurring_start_date: Optional[date] = None
    recurring_end_date: Optional[date] = None

    # -------- Date checks --------
    def _within_recurring_window(self, d: date) -> bool:
        if self.recurring_start_date and d < self.recurring_start_date:
            return False
        if self.recurring_end_date and d > self.recurring_end_date:
            return False
        return True

    def conflicts_with_date(self, d: date) -> bool:
        if not self.is_recurring:
            return self.start_date <= d <= self.end_date
        return self._within_recurring_window(d) and sunday_index(d) in self.recurring_days

    def overlaps_with_date_range(self, start: date, end: date) -> bool:
        if not self.is_recurring:
            return self.start_date <= end and self.end_date >= start
        if not self.recurring_days:
            return False
        return any(self.conflicts_with_date(d) for d in iter_dates(start, end))

    def get_conflicting_dates(self, start: date, end: date) -> list[date]:
        return [d for d in iter_dates(start, end) if self.conflicts_with_date(d)]

    def get_recurring_day_names(self) -> list[str]:
        if not self.is_recurring:
            return []
        return [DAY_NAMES[d] for d in self.recurring_days if 0 <= d <= 6]

    @property
    def formatted_date_range(self) -> str:
        if self.is_recurring:
            text = "Every " + ", ".join(self.get_recurring_day_names())
            if self.recurring_start_date or self.recurring_end_date:
                start = format_long_date(self.recurring_start_date) if self.recurring_start_date else "Beginning"
                end = format_long_date(self.recurring_end_date) if self.recurring_end_date else "Ongoing"
                text += f" (Effective: {start} - {end})"
            return text
        if self.start_date == self.end_date:
            return format_long_date(self.start_date)
        return f"{format_long_date(self.start_date)} - {format_long_date(self.end_date)}"

    # -------- Scope --------
    def applies_to_user(self, user: User) -> bool:
        if self.is_company_wide:
            return True
        if user.user_id in self.user_ids:
            return True
        if self.position_id and user.position_id == self.position_id:
            return True
        return bool(set(self.department_ids) & set(user.department_ids))

    def applies_to_pto_type(self, pto_type_id: int) -> bool:
        return not self.pto_type_ids or int(pto_type_id) in self.pto_type_ids

    def to_dict(self) -> dict:
        return {
            "id": self.blackout_id,
            "name": self.name,
            "description": self.description,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "position_id": self.position_id,
            "department_ids": list(self.department_ids),
            "user_ids": list(self.user_ids),
            "is_company_wide": self.is_company_wide,
            "is_holiday": self.is_holiday,
            "is_strict": self.is_strict,
            "allow_emergency_override": self.allow_emergency_override,
            "restriction_type": self.restriction_type.value,
            "max_requests_allowed": self.max_requests_allowed,
            "pto_type_ids": list(self.pto_type_ids),
            "is_active": self.is_active,
            "is_recurring": self.is_recurring,
            "recurring_days": list(self.recurring_days),
            "recurring_day_names": self.get_recurring_day_names(),
            "recurring_start_date": self.recurring_start_date,
            "recurring_end_date": self.recurring_end_date,
            "formatted_date_range": self.formatted_date_range,
        }
