from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from ..common.datetime_utils import format_long_date
from ..core.exceptions import NotFoundError
from ..organization.repository import DepartmentRepository, HolidayRepository, PositionRepository
from ..pto_requests.model import PtoRequest
from ..pto_requests.repository import PtoRequestRepository
from ..pto_types.repository import PtoTypeRepository
from ..users.model import User
from ..users.repository import UserRepository
from .factory import BlackoutRestrictionFactory
from .model import PtoBlackout
from .repository import BlackoutRepository
from .restrictions.base import BlackoutFinding

logger = logging.getLogger(__name__)


class RepositoryRequestCounter:
    """RequestCounter backed by the request repository.

    Period blackouts count overlapping requests of users inside the blackout's
    scope; recurring blackouts count every request touching one of the
    recurring weekdays inside the effective window.
    """

    def __init__(self, requests: PtoRequestRepository, *, exclude_request_id: Optional[int] = None):
        self._requests = requests
        self._exclude_request_id = exclude_request_id

    def count_in_period(self, blackout: PtoBlackout) -> int:
        if blackout.is_company_wide:
            scope: dict[str, Any] = {}
        else:
            scope = {
                "user_ids": blackout.user_ids,
                "position_id": blackout.position_id,
                "department_ids": blackout.department_ids,
            }
        return self._requests.count_active_in_period(
            blackout.start_date,
            blackout.end_date,
            pto_type_ids=blackout.pto_type_ids,
            exclude_request_id=self._exclude_request_id,
            **scope,
        )

    def count_on_recurring_days(self, blackout: PtoBlackout) -> int:
        spans = self._requests.list_active_request_dates(
            pto_type_ids=blackout.pto_type_ids, exclude_request_id=self._exclude_request_id
        )
        return sum(1 for start, end in spans if blackout.overlaps_with_date_range(start, end))


@dataclass(frozen=True)
class BlackoutValidation:
    conflicts: tuple[BlackoutFinding, ...] = ()
    warnings: tuple[BlackoutFinding, ...] = ()
    is_emergency: bool = False

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def can_submit(self) -> bool:
        return not self.conflicts

    @property
    def requires_acknowledgment(self) -> bool:
        return bool(self.warnings)

    @property
    def requires_override(self) -> bool:
        return bool(self.conflicts) and self.is_emergency

    @property
    def message(self) -> Optional[str]:
        findings = self.conflicts or self.warnings
        if not findings:
            return None
        return " ".join(f.message for f in findings)

    def to_dict(self) -> dict:
        return {
            "has_conflicts": self.has_conflicts,
            "has_warnings": self.has_warnings,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "warnings": [w.to_dict() for w in self.warnings],
            "can_submit": self.can_submit,
            "requires_acknowledgment": self.requires_acknowledgment,
            "requires_override": self.requires_override,
        }


@dataclass
class BlackoutValidationService:
    blackouts: BlackoutRepository
    requests: PtoRequestRepository
    holidays: HolidayRepository
    users: UserRepository
    types: PtoTypeRepository
    positions: PositionRepository
    departments: DepartmentRepository
    factory: BlackoutRestrictionFactory = field(default_factory=BlackoutRestrictionFactory)

    def _candidates(self, start: date, end: date) -> list[PtoBlackout]:
        found = list(self.blackouts.list_active_overlapping(start, end))
        found.extend(b for b in self.blackouts.list_active_recurring() if b.overlaps_with_date_range(start, end))
        return found

    def _range_has_holiday(self, start: date, end: date) -> bool:
        return bool(self.holidays.list_between(start, end, active_only=True))

    def validate_pto_request(
        self,
        user: User,
        start: date,
        end: date,
        pto_type_id: int,
        *,
        exclude_request_id: Optional[int] = None,
        is_emergency: bool = False,
    ) -> BlackoutValidation:
        counter = RepositoryRequestCounter(self.requests, exclude_request_id=exclude_request_id)
        conflicts: list[BlackoutFinding] = []
        warnings: list[BlackoutFinding] = []
        holiday_in_range: Optional[bool] = None

        for blackout in self._candidates(start, end):
            if not blackout.applies_to_user(user) or not blackout.applies_to_pto_type(pto_type_id):
                continue
            if blackout.is_holiday:
                if holiday_in_range is None:
                    holiday_in_range = self._range_has_holiday(start, end)
                if holiday_in_range:
                    continue

            finding = self.factory.for_blackout(blackout).evaluate(
                blackout=blackout, start=start, end=end, is_emergency=is_emergency, counter=counter
            )
            if finding is None:
                continue
            (conflicts if finding.is_conflict else warnings).append(finding)

        if conflicts or warnings:
            logger.info(
                "Blackout check for user %s (%s - %s): %s conflicts, %s warnings",
                user.user_id,
                start,
                end,
                len(conflicts),
                len(warnings),
            )
        return BlackoutValidation(conflicts=tuple(conflicts), warnings=tuple(warnings), is_emergency=is_emergency)

    def validate_for_request(self, request: PtoRequest, *, is_emergency: bool = False) -> BlackoutValidation:
        return self.validate_pto_request(
            self._user(request.user_id),
            request.start_date,
            request.end_date,
            request.pto_type_id,
            exclude_request_id=request.request_id or None,
            is_emergency=is_emergency,
        )

    def _user(self, user_id: int) -> User:
        user = self.users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found.")
        return user

    # -------- Summaries --------
    @staticmethod
    def can_request_proceed(request: PtoRequest) -> bool:
        if not request.has_blackout_conflicts and not request.has_blackout_warnings:
            return True
        if not request.has_blackout_conflicts:
            return request.blackout_warnings_acknowledged
        if request.is_emergency_override:
            return request.override_approved
        return False

    def status_summary(self, request: PtoRequest) -> dict:
        return {
            "has_conflicts": request.has_blackout_conflicts,
            "has_warnings": request.has_blackout_warnings,
            "warnings_acknowledged": request.blackout_warnings_acknowledged,
            "has_emergency_override": request.is_emergency_override,
            "override_approved": request.override_approved,
            "conflicts_summary": request.conflict_messages,
            "warnings_summary": request.warning_messages,
            "can_proceed": self.can_request_proceed(request),
        }

    def blackout_scope(self, blackout: PtoBlackout) -> dict:
        if blackout.is_company_wide:
            return {"type": "company_wide", "description": "Applies to all employees"}

        parts: list[str] = []
        if blackout.position_id:
            position = self.positions.get_by_id(blackout.position_id)
            parts.append("Position: " + (position.name if position else "Unknown"))
        if blackout.department_ids:
            names = [d.name for d in (self.departments.get_by_id(i) for i in blackout.department_ids) if d]
            parts.append("Departments: " + ", ".join(names))
        if blackout.user_ids:
            names = [u.name for u in self.users.list_by_ids(blackout.user_ids)]
            parts.append("Specific Users: " + ", ".join(names))
        return {"type": "targeted", "description": " | ".join(parts)}

    def _admin_entry(self, finding: BlackoutFinding, *, with_override: bool) -> dict:
        blackout = finding.blackout
        entry = {
            "blackout_name": blackout.name,
            "blackout_period": blackout.formatted_date_range,
            "restriction_type": blackout.restriction_type.value,
            "description": finding.message,
        }
        if with_override:
            entry["can_override"] = finding.can_override
            entry["is_strict"] = blackout.is_strict
        entry["scope"] = self.blackout_scope(blackout)
        entry["additional_info"] = dict(finding.restriction_details)
        return entry

    def details_for_admin(self, request: PtoRequest) -> dict:
        user = self._user(request.user_id)
        validation = self.validate_for_request(request)
        position = self.positions.get_by_id(user.position_id) if user.position_id else None
        departments = [d.name for d in (self.departments.get_by_id(i) for i in user.department_ids) if d]
        pto_type = self.types.get_by_id(request.pto_type_id)

        return {
            "request_id": request.request_id,
            "employee": {
                "name": user.name,
                "email": user.email,
                "position": position.name if position else None,
                "departments": departments,
            },
            "request_details": {
                "dates": f"{format_long_date(request.start_date)} - {format_long_date(request.end_date)}",
                "total_days": request.total_days,
                "pto_type": pto_type.name if pto_type else None,
                "reason": request.reason,
            },
            "blackout_analysis": {
                "has_conflicts": validation.has_conflicts,
                "has_warnings": validation.has_warnings,
                "conflicts": [self._admin_entry(c, with_override=True) for c in validation.conflicts],
                "warnings": [self._admin_entry(w, with_override=False) for w in validation.warnings],
            },
            "review_required": validation.has_conflicts or validation.has_warnings,
        }

    def approval_recommendation(self, request: PtoRequest, *, details: Optional[dict] = None) -> dict:
        analysis = (details or self.details_for_admin(request))["blackout_analysis"]
        recommendation: dict[str, Any] = {
            "action": "review",
            "priority": "normal",
            "reasoning": [],
            "considerations": [],
        }

        if analysis["has_conflicts"]:
            recommendation["action"] = "careful_review"
            recommendation["priority"] = "high"
            recommendation["reasoning"].append("Request conflicts with blackout periods")
            for conflict in analysis["conflicts"]:
                if conflict["is_strict"]:
                    recommendation["action"] = "likely_deny"
                    recommendation["priority"] = "urgent"
                    recommendation["reasoning"].append("Conflicts with strict blackout: " + conflict["blackout_name"])
                if not conflict["can_override"]:
                    recommendation["considerations"].append("No override permitted for: " + conflict["blackout_name"])

        for warning in analysis["warnings"]:
            info = warning["additional_info"]
            if "will_consume_slot" in info:
                recommendation["considerations"].append("Will consume limited slot for: " + warning["blackout_name"])
            if "requires_justification" in info:
                recommendation["considerations"].append(
                    "Business justification required for: " + warning["blackout_name"]
                )
        return recommendation

    # -------- Lookups for the employee-facing screens --------
    def blackouts_for_user(
        self, user: User, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[PtoBlackout]:
        if start and end:
            candidates = self._candidates(start, end)
        else:
            candidates = list(self.blackouts.list_blackouts(active_only=True))
        return [b for b in candidates if b.applies_to_user(user)]
