from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, Sequence

from ..common.validators import FieldErrors, read_bool, read_choice, read_date, read_int, read_int_list, read_str
from ..core.enums import RestrictionType
from ..core.exceptions import NotFoundError
from ..organization.repository import DepartmentRepository, PositionRepository
from ..pto_types.repository import PtoTypeRepository
from ..users.repository import UserRepository
from .model import PtoBlackout
from .repository import BlackoutRepository
from .validation import BlackoutValidation, BlackoutValidationService

logger = logging.getLogger(__name__)


class BlackoutService:
    def __init__(
        self,
        blackouts: BlackoutRepository,
        users: UserRepository,
        types: PtoTypeRepository,
        positions: PositionRepository,
        departments: DepartmentRepository,
        validation: BlackoutValidationService,
    ):
        self._blackouts = blackouts
        self._users = users
        self._types = types
        self._positions = positions
        self._departments = departments
        self._validation = validation

    def list_blackouts(self, *, active_only: bool = False) -> Sequence[PtoBlackout]:
        return self._blackouts.list_blackouts(active_only=active_only)

    def get_blackout(self, blackout_id: int) -> PtoBlackout:
        blackout = self._blackouts.get_by_id(int(blackout_id))
        if not blackout:
            raise NotFoundError("Blackout period not found.")
        return blackout

    def _read(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        errors = FieldErrors()
        data: dict[str, Any] = {
            "name": read_str(payload, "name", errors, required=True, max_length=255),
            "description": read_str(payload, "description", errors),
            "start_date": read_date(payload, "start_date", errors, required=True),
            "end_date": read_date(payload, "end_date", errors, required=True),
            "position_id": read_int(payload, "position_id", errors),
            "department_ids": read_int_list(payload, "department_ids", errors),
            "user_ids": read_int_list(payload, "user_ids", errors),
            "is_company_wide": read_bool(payload, "is_company_wide"),
            "is_holiday": read_bool(payload, "is_holiday"),
            "is_strict": read_bool(payload, "is_strict"),
            "allow_emergency_override": read_bool(payload, "allow_emergency_override"),
            "restriction_type": read_choice(
                payload, "restriction_type", errors, [r.value for r in RestrictionType], required=True
            ),
            "max_requests_allowed": read_int(payload, "max_requests_allowed", errors, min_value=0),
            "pto_type_ids": read_int_list(payload, "pto_type_ids", errors),
            "is_active": read_bool(payload, "is_active", default=True),
            "is_recurring": read_bool(payload, "is_recurring"),
            "recurring_days": read_int_list(payload, "recurring_days", errors),
            "recurring_start_date": read_date(payload, "recurring_start_date", errors),
            "recurring_end_date": read_date(payload, "recurring_end_date", errors),
        }

        start, end = data["start_date"], data["end_date"]
        if start and end and end < start:
            errors.add("end_date", "The end date must be a date after or equal to start date.")
        if data["position_id"] and not self._positions.get_by_id(data["position_id"]):
            errors.add("position_id", "The selected position id is invalid.")
        if any(not self._departments.get_by_id(d) for d in data["department_ids"]):
            errors.add("department_ids", "The selected department ids is invalid.")
        if data["user_ids"] and len(self._users.list_by_ids(data["user_ids"])) != len(set(data["user_ids"])):
            errors.add("user_ids", "The selected user ids is invalid.")
        if any(not self._types.get_by_id(t) for t in data["pto_type_ids"]):
            errors.add("pto_type_ids", "The selected pto type ids is invalid.")

        if data["is_recurring"]:
            if not data["recurring_days"]:
                errors.add("recurring_days", "The recurring days field is required when is recurring is true.")
            elif any(d < 0 or d > 6 for d in data["recurring_days"]):
                errors.add("recurring_days", "The recurring days must be between 0 and 6.")
            rs, re_ = data["recurring_start_date"], data["recurring_end_date"]
            if rs and re_ and re_ < rs:
                errors.add(
                    "recurring_end_date",
                    "The recurring end date must be a date after or equal to recurring start date.",
                )
        else:
            data["recurring_days"] = ()
            data["recurring_start_date"] = None
            data["recurring_end_date"] = None

        errors.raise_if_any()
        data["restriction_type"] = RestrictionType(data["restriction_type"])
        return data

    def create_blackout(self, payload: Mapping[str, Any]) -> PtoBlackout:
        data = self._read(payload)
        blackout = PtoBlackout(blackout_id=0, **data)
        blackout = replace(blackout, blackout_id=self._blackouts.create(blackout))
        logger.info("Blackout period created: id=%s name=%s", blackout.blackout_id, blackout.name)
        return blackout

    def update_blackout(self, blackout_id: int, payload: Mapping[str, Any]) -> PtoBlackout:
        current = self.get_blackout(blackout_id)
        updated = replace(current, **self._read(payload))
        self._blackouts.update(updated)
        logger.info("Blackout period updated: id=%s name=%s", updated.blackout_id, updated.name)
        return updated

    def delete_blackout(self, blackout_id: int) -> None:
        blackout = self.get_blackout(blackout_id)
        self._blackouts.delete(blackout.blackout_id)
        logger.info("Blackout period deleted: id=%s name=%s", blackout.blackout_id, blackout.name)

    def toggle_active(self, blackout_id: int) -> PtoBlackout:
        blackout = self.get_blackout(blackout_id)
        updated = replace(blackout, is_active=not blackout.is_active)
        self._blackouts.update(updated)
        return updated

    # -------- Checks against a date range --------
    def _range(self, payload: Mapping[str, Any], errors: FieldErrors):
        start = read_date(payload, "start_date", errors, required=True)
        end = read_date(payload, "end_date", errors, required=True)
        if start and end and end < start:
            errors.add("end_date", "The end date must be a date after or equal to start date.")
        return start, end

    def _user(self, user_id: Optional[int], errors: FieldErrors):
        if user_id is None:
            return None
        user = self._users.get_by_id(user_id)
        if not user:
            errors.add("user_id", "The selected user id is invalid.")
        return user

    def validate_range(self, payload: Mapping[str, Any], *, default_user_id: int) -> BlackoutValidation:
        errors = FieldErrors()
        pto_type_id = read_int(payload, "pto_type_id", errors, required=True)
        start, end = self._range(payload, errors)
        user_id = read_int(payload, "user_id", errors)
        is_emergency = read_bool(payload, "is_emergency")
        user = self._user(user_id if user_id is not None else default_user_id, errors)
        if pto_type_id is not None and not self._types.get_by_id(pto_type_id):
            errors.add("pto_type_id", "The selected pto type id is invalid.")
        errors.raise_if_any()
        return self._validation.validate_pto_request(user, start, end, pto_type_id, is_emergency=is_emergency)

    def blackouts_for_user(self, payload: Mapping[str, Any]) -> list[PtoBlackout]:
        errors = FieldErrors()
        user = self._user(read_int(payload, "user_id", errors, required=True), errors)
        start, end = self._range(payload, errors)
        pto_type_id = read_int(payload, "pto_type_id", errors)
        errors.raise_if_any()

        found = self._validation.blackouts_for_user(user, start, end)
        if pto_type_id is not None:
            found = [b for b in found if b.applies_to_pto_type(pto_type_id)]
        return found
