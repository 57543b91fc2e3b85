from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Department:
    dept_id: int
    name: str
    description: Optional[str] = None
    is_active: bool = True
    manager_id: Optional[int] = None
    users_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.dept_id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "manager_id": self.manager_id,
            "users_count": self.users_count,
        }


@dataclass(frozen=True)
class Position:
    position_id: int
    name: str
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.position_id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class Holiday:
    holiday_id: int
    name: str
    holiday_date: date
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.holiday_id,
            "name": self.name,
            "date": self.holiday_date.isoformat(),
            "is_active": self.is_active,
        }
