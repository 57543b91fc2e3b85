from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.constants import SUPER_ADMIN_ROLES


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Plain data object; roles and permissions are resolved by the repository
    (permissions include the ones granted through roles).
    """

    user_id: int
    name: str
    email: str
    password_hash: str
    position_id: Optional[int] = None
    manager_id: Optional[int] = None
    start_date: Optional[date] = None
    is_active: bool = True
    department_ids: tuple[int, ...] = ()
    roles: tuple[str, ...] = ()
    permissions: tuple[str, ...] = ()

    def has_role(self, *names: str) -> bool:
        return any(n in self.roles for n in names)

    def has_any_permission(self, *names: str) -> bool:
        return any(n in self.permissions for n in names)

    def is_super_admin(self, super_admin_email: Optional[str] = None) -> bool:
        if self.has_role(*SUPER_ADMIN_ROLES):
            return True
        return bool(super_admin_email) and self.email.lower() == str(super_admin_email).lower()

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "position_id": self.position_id,
            "manager_id": self.manager_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "is_active": self.is_active,
            "department_ids": list(self.department_ids),
            "roles": list(self.roles),
        }
