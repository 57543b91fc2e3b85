from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..core.enums import ApprovalStatus, DayPortion, RequestStatus


@dataclass(frozen=True)
class PtoRequest:
    """Domain entity: one employee's request for time off.

    Blackout findings are stored on the request as they were when it was
    submitted (or last updated), so reviewers see what the employee saw.
    """

    request_id: int
    request_number: str
    user_id: int
    pto_type_id: int
    start_date: date
    end_date: date
    total_days: Decimal
    status: RequestStatus = RequestStatus.PENDING
    start_time: DayPortion = DayPortion.FULL_DAY
    end_time: DayPortion = DayPortion.FULL_DAY
    reason: Optional[str] = None
    day_options: Optional[Any] = None

    blackout_conflicts: tuple[dict, ...] = ()
    blackout_warnings: tuple[dict, ...] = ()
    blackout_validation_message: Optional[str] = None
    has_blackout_conflicts: bool = False
    has_blackout_warnings: bool = False
    blackout_warnings_acknowledged: bool = False
    blackout_acknowledged_at: Optional[datetime] = None
    is_emergency_override: bool = False
    blackout_override_reason: Optional[str] = None
    override_approved: bool = False
    override_approved_by_id: Optional[int] = None
    override_approved_at: Optional[datetime] = None

    approval_notes: Optional[str] = None
    denial_reason: Optional[str] = None
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    denied_by_id: Optional[int] = None
    denied_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status == RequestStatus.APPROVED

    @property
    def status_color(self) -> str:
        return self.status.color

    @property
    def has_emergency_override(self) -> bool:
        return self.is_emergency_override and self.override_approved

    @property
    def was_denied_for_blackout(self) -> bool:
        if self.status != RequestStatus.DENIED or not self.denial_reason:
            return False
        reason = self.denial_reason.lower()
        return "blackout" in reason or "restricted period" in reason

    @property
    def conflict_messages(self) -> list[str]:
        return [str(c.get("message", "")) for c in self.blackout_conflicts]

    @property
    def warning_messages(self) -> list[str]:
        return [str(w.get("message", "")) for w in self.blackout_warnings]

    def to_dict(self) -> dict:
        return {
            "id": self.request_id,
            "request_number": self.request_number,
            "user_id": self.user_id,
            "pto_type_id": self.pto_type_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "start_time": self.start_time.value,
            "end_time": self.end_time.value,
            "total_days": self.total_days,
            "reason": self.reason,
            "status": self.status.value,
            "status_color": self.status_color,
            "day_options": self.day_options,
            "blackout_conflicts": list(self.blackout_conflicts),
            "blackout_warnings": list(self.blackout_warnings),
            "blackout_validation_message": self.blackout_validation_message,
            "has_blackout_conflicts": self.has_blackout_conflicts,
            "has_blackout_warnings": self.has_blackout_warnings,
            "blackout_warnings_acknowledged": self.blackout_warnings_acknowledged,
            "is_emergency_override": self.is_emergency_override,
            "blackout_override_reason": self.blackout_override_reason,
            "override_approved": self.override_approved,
            "approval_notes": self.approval_notes,
            "denial_reason": self.denial_reason,
            "approved_by_id": self.approved_by_id,
            "approved_at": self.approved_at,
            "denied_by_id": self.denied_by_id,
            "denied_at": self.denied_at,
            "cancelled_at": self.cancelled_at,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class PtoApproval:
    approval_id: int
    pto_request_id: int
    approver_id: int
    status: ApprovalStatus = ApprovalStatus.PENDING
    comments: Optional[str] = None
    level: int = 1
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.approval_id,
            "pto_request_id": self.pto_request_id,
            "approver_id": self.approver_id,
            "status": self.status.value,
            "comments": self.comments,
            "level": self.level,
            "responded_at": self.responded_at,
            "created_at": self.created_at,
        }

