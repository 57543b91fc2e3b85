from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..core.enums import TransactionType


@dataclass(frozen=True)
class PtoBalance:
    """Per user, PTO type and year.

    available = balance - used_balance - pending_balance
    """

    balance_id: int
    user_id: int
    pto_type_id: int
    balance: Decimal
    pending_balance: Decimal
    used_balance: Decimal
    year: int

    @property
    def available_balance(self) -> Decimal:
        return self.balance - self.used_balance - self.pending_balance

    def with_added(self, amount: Decimal) -> "PtoBalance":
        return replace(self, balance=self.balance + amount)

    def with_subtracted(self, amount: Decimal) -> "PtoBalance":
        return replace(self, balance=self.balance - amount, used_balance=self.used_balance + amount)

    def with_pending_added(self, amount: Decimal) -> "PtoBalance":
        return replace(self, pending_balance=max(Decimal("0"), self.pending_balance + amount))

    def with_pending_subtracted(self, amount: Decimal) -> "PtoBalance":
        return replace(self, pending_balance=max(Decimal("0"), self.pending_balance - amount))

    def with_reset(self, new_balance: Decimal, *, year: int) -> "PtoBalance":
        return replace(
            self,
            balance=new_balance,
            used_balance=Decimal("0"),
            pending_balance=Decimal("0"),
            year=year,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.balance_id,
            "user_id": self.user_id,
            "pto_type_id": self.pto_type_id,
            "balance": self.balance,
            "pending_balance": self.pending_balance,
            "used_balance": self.used_balance,
            "available_balance": self.available_balance,
            "year": self.year,
        }


@dataclass(frozen=True)
class PtoTransaction:
    transaction_id: int
    transaction_number: str
    user_id: int
    pto_type_id: int
    transaction_type: TransactionType
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    effective_date: date
    pto_request_id: Optional[int] = None
    description: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.transaction_id,
            "transaction_number": self.transaction_number,
            "user_id": self.user_id,
            "pto_type_id": self.pto_type_id,
            "pto_request_id": self.pto_request_id,
            "type": self.transaction_type.value,
            "amount": self.amount,
            "balance_before": self.balance_before,
            "balance_after": self.balance_after,
            "description": self.description,
            "metadata": self.metadata,
            "created_by_id": self.created_by_id,
            "effective_date": self.effective_date,
            "created_at": self.created_at,
        }
