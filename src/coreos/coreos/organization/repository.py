from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Department, Holiday, Position


class DepartmentRepository(Protocol):
    def list_all(self, *, active_only: bool = False) -> Sequence[Department]:
        raise NotImplementedError

    def get_by_id(self, dept_id: int) -> Optional[Department]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[Department]:
        raise NotImplementedError

    def create(self, *, name: str, description: Optional[str], is_active: bool, manager_id: Optional[int]) -> int:
        raise NotImplementedError

    def update(self, dept: Department) -> bool:
        raise NotImplementedError

    def delete(self, dept_id: int) -> bool:
        raise NotImplementedError

    def add_user(self, *, dept_id: int, user_id: int) -> bool:
        raise NotImplementedError

    def remove_user(self, *, dept_id: int, user_id: int) -> bool:
        raise NotImplementedError

    def list_user_ids(self, dept_id: int) -> Sequence[int]:
        raise NotImplementedError


class PositionRepository(Protocol):
    def list_all(self) -> Sequence[Position]:
        raise NotImplementedError

    def get_by_id(self, position_id: int) -> Optional[Position]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[Position]:
        raise NotImplementedError

    def create(self, *, name: str, description: Optional[str]) -> int:
        raise NotImplementedError

    def update(self, position: Position) -> bool:
        raise NotImplementedError

    def delete(self, position_id: int) -> bool:
        raise NotImplementedError

    def count_assigned_users(self, position_id: int) -> int:
        raise NotImplementedError

    def detach_users(self, position_id: int) -> int:
        raise NotImplementedError


class HolidayRepository(Protocol):
    def list_between(self, start: date, end: date, *, active_only: bool = True) -> Sequence[Holiday]:
        raise NotImplementedError

    def create(self, *, name: str, holiday_date: date, is_active: bool = True) -> int:
        raise NotImplementedError

    def delete(self, holiday_id: int) -> bool:
        raise NotImplementedError
