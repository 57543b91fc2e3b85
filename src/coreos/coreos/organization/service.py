from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Mapping, Optional, Sequence

from ..common.validators import FieldErrors, read_bool, read_date, read_int, read_str
from ..core.exceptions import NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import Department, Holiday, Position
from .repository import DepartmentRepository, HolidayRepository, PositionRepository

logger = logging.getLogger(__name__)


class PositionService:
    def __init__(self, positions: PositionRepository):
        self._positions = positions

    def list_positions(self) -> Sequence[Position]:
        return self._positions.list_all()

    def get_position(self, position_id: int) -> Position:
        position = self._positions.get_by_id(int(position_id))
        if not position:
            raise NotFoundError("Position not found.")
        return position

    def _read(self, payload: Mapping[str, Any], *, ignore_id: Optional[int] = None) -> tuple[str, Optional[str]]:
        errors = FieldErrors()
        name = read_str(payload, "name", errors, required=True, max_length=255)
        description = read_str(payload, "description", errors)
        if name and not errors.has("name"):
            existing = self._positions.get_by_name(name)
            if existing and existing.position_id != ignore_id:
                errors.add("name", "The name has already been taken.")
        errors.raise_if_any()
        return name, description

    def create_position(self, payload: Mapping[str, Any]) -> Position:
        name, description = self._read(payload)
        position_id = self._positions.create(name=name, description=description)
        logger.info("Position created: %s (id=%s)", name, position_id)
        return Position(position_id=position_id, name=name, description=description)

    def update_position(self, position_id: int, payload: Mapping[str, Any]) -> Position:
        position = self.get_position(position_id)
        name, description = self._read(payload, ignore_id=position.position_id)
        updated = replace(position, name=name, description=description)
        self._positions.update(updated)
        logger.info("Position updated: %s (id=%s)", name, position.position_id)
        return updated

    def delete_position(self, position_id: int) -> str:
        position = self.get_position(position_id)
        assigned = self._positions.count_assigned_users(position.position_id)
        if assigned > 0:
            logger.warning(
                "Deleting position '%s' with %s assigned user(s); users will be detached",
                position.name,
                assigned,
            )
            self._positions.detach_users(position.position_id)
        self._positions.delete(position.position_id)
        logger.info("Position deleted: %s (id=%s)", position.name, position.position_id)
        return f"Position '{position.name}' deleted successfully."


class DepartmentService:
    def __init__(self, departments: DepartmentRepository, users: UserRepository):
        self._departments = departments
        self._users = users

    def list_departments(self, *, active_only: bool = False) -> Sequence[Department]:
        return self._departments.list_all(active_only=active_only)

    def get_department(self, dept_id: int) -> Department:
        dept = self._departments.get_by_id(int(dept_id))
        if not dept:
            raise NotFoundError("Department not found.")
        return dept

    def department_users(self, dept_id: int) -> list[dict]:
        dept = self.get_department(dept_id)
        users = self._users.list_by_ids(self._departments.list_user_ids(dept.dept_id))
        return [{"id": u.user_id, "name": u.name, "email": u.email} for u in users]

    def _read(self, payload: Mapping[str, Any], *, ignore_id: Optional[int] = None):
        errors = FieldErrors()
        name = read_str(payload, "name", errors, required=True, max_length=255)
        description = read_str(payload, "description", errors)
        manager_id = read_int(payload, "manager_id", errors, min_value=1)
        is_active = read_bool(payload, "is_active", default=True)
        if name and not errors.has("name"):
            existing = self._departments.get_by_name(name)
            if existing and existing.dept_id != ignore_id:
                errors.add("name", "The name has already been taken.")
        if manager_id is not None and not errors.has("manager_id") and not self._users.get_by_id(manager_id):
            errors.add("manager_id", "The selected manager id is invalid.")
        errors.raise_if_any()
        return name, description, manager_id, is_active

    def create_department(self, payload: Mapping[str, Any]) -> Department:
        name, description, manager_id, is_active = self._read(payload)
        dept_id = self._departments.create(
            name=name, description=description, is_active=is_active, manager_id=manager_id
        )
        logger.info("Department created: %s (id=%s)", name, dept_id)
        return Department(
            dept_id=dept_id, name=name, description=description, is_active=is_active, manager_id=manager_id
        )

    def update_department(self, dept_id: int, payload: Mapping[str, Any]) -> Department:
        dept = self.get_department(dept_id)
        name, description, manager_id, is_active = self._read(payload, ignore_id=dept.dept_id)
        updated = replace(dept, name=name, description=description, manager_id=manager_id, is_active=is_active)
        self._departments.update(updated)
        logger.info("Department updated: %s (id=%s)", name, dept.dept_id)
        return updated

    def delete_department(self, dept_id: int) -> str:
        dept = self.get_department(dept_id)
        self._departments.delete(dept.dept_id)
        logger.info("Department deleted: %s (id=%s)", dept.name, dept.dept_id)
        return f"Department '{dept.name}' deleted successfully."

    def add_user(self, dept_id: int, payload: Mapping[str, Any]) -> str:
        dept = self.get_department(dept_id)
        errors = FieldErrors()
        user_id = read_int(payload, "user_id", errors, required=True, min_value=1)
        errors.raise_if_any()
        user = self._users.get_by_id(user_id)
        if not user:
            raise ValidationError(
                "The selected user id is invalid.", errors={"user_id": ["The selected user id is invalid."]}
            )
        if not self._departments.add_user(dept_id=dept.dept_id, user_id=user.user_id):
            raise ValidationError(f"{user.name} is already a member of {dept.name}.")
        return f"{user.name} added to {dept.name}."

    def remove_user(self, dept_id: int, user_id: int) -> str:
        dept = self.get_department(dept_id)
        if not self._departments.remove_user(dept_id=dept.dept_id, user_id=int(user_id)):
            raise NotFoundError("User is not a member of this department.")
        return f"User removed from {dept.name}."


class HolidayService:
    def __init__(self, holidays: HolidayRepository):
        self._holidays = holidays

    def list_for_year(self, year: int) -> Sequence[Holiday]:
        return self._holidays.list_between(date(year, 1, 1), date(year, 12, 31), active_only=False)

    def create_holiday(self, payload: Mapping[str, Any]) -> Holiday:
        errors = FieldErrors()
        name = read_str(payload, "name", errors, required=True, max_length=255)
        holiday_date = read_date(payload, "date", errors, required=True)
        is_active = read_bool(payload, "is_active", default=True)
        errors.raise_if_any()
        holiday_id = self._holidays.create(name=name, holiday_date=holiday_date, is_active=is_active)
        logger.info("Holiday created: %s on %s", name, holiday_date.isoformat())
        return Holiday(holiday_id=holiday_id, name=name, holiday_date=holiday_date, is_active=is_active)

    def delete_holiday(self, holiday_id: int) -> None:
        if not self._holidays.delete(int(holiday_id)):
            raise NotFoundError("Holiday not found.")
