from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.enums import AccrualFrequency


@dataclass(frozen=True)
class PtoPolicy:
    """Accrual rules for one user and one PTO type."""

    policy_id: int
    name: str
    user_id: int
    pto_type_id: int
    initial_days: Decimal
    annual_accrual_amount: Decimal
    effective_date: date
    description: Optional[str] = None
    bonus_days_per_year: Decimal = Decimal("0")
    rollover_enabled: bool = False
    max_rollover_days: Optional[Decimal] = None
    max_negative_balance: Decimal = Decimal("0")
    years_for_bonus: int = 1
    accrual_frequency: AccrualFrequency = AccrualFrequency.ANNUALLY
    prorate_first_year: bool = True
    end_date: Optional[date] = None
    is_active: bool = True

    def is_currently_active(self, today: date) -> bool:
        if not self.is_active or self.effective_date > today:
            return False
        return self.end_date is None or today <= self.end_date

    def to_dict(self) -> dict:
        return {
            "id": self.policy_id,
            "name": self.name,
            "description": self.description,
            "user_id": self.user_id,
            "pto_type_id": self.pto_type_id,
            "initial_days": self.initial_days,
            "annual_accrual_amount": self.annual_accrual_amount,
            "bonus_days_per_year": self.bonus_days_per_year,
            "rollover_enabled": self.rollover_enabled,
            "max_rollover_days": self.max_rollover_days,
            "max_negative_balance": self.max_negative_balance,
            "years_for_bonus": self.years_for_bonus,
            "accrual_frequency": self.accrual_frequency.value,
            "prorate_first_year": self.prorate_first_year,
            "effective_date": self.effective_date,
            "end_date": self.end_date,
            "is_active": self.is_active,
        }
