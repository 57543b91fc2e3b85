from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_PTO_COLOR


@dataclass(frozen=True)
class PtoType:
    pto_type_id: int
    name: str
    code: str
    description: Optional[str] = None
    color: str = DEFAULT_PTO_COLOR
    multi_level_approval: bool = False
    disable_hierarchy_approval: bool = False
    specific_approvers: tuple[int, ...] = ()
    uses_balance: bool = True
    carryover_allowed: bool = False
    negative_allowed: bool = False
    affects_schedule: bool = False
    show_in_department_calendar: bool = True
    is_active: bool = True
    sort_order: int = 0

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.code})"

    def to_dict(self) -> dict:
        return {
            "id": self.pto_type_id,
            "name": self.name,
            "code": self.code,
            "display_name": self.display_name,
            "description": self.description,
            "color": self.color,
            "multi_level_approval": self.multi_level_approval,
            "disable_hierarchy_approval": self.disable_hierarchy_approval,
            "specific_approvers": list(self.specific_approvers),
            "uses_balance": self.uses_balance,
            "carryover_allowed": self.carryover_allowed,
            "negative_allowed": self.negative_allowed,
            "affects_schedule": self.affects_schedule,
            "show_in_department_calendar": self.show_in_department_calendar,
            "is_active": self.is_active,
            "sort_order": self.sort_order,
        }


@dataclass(frozen=True)
class PtoTypeUsage:
    policies_count: int = 0
    requests_count: int = 0
    active_requests_count: int = 0
    users_with_balance_count: int = 0
    transactions_count: int = 0

    @property
    def in_use(self) -> bool:
        return bool(self.policies_count or self.requests_count or self.users_with_balance_count or self.transactions_count)

    def to_dict(self) -> dict:
        return {
            "policies_count": self.policies_count,
            "requests_count": self.requests_count,
            "active_requests_count": self.active_requests_count,
            "users_with_balance_count": self.users_with_balance_count,
            "transactions_count": self.transactions_count,
        }
