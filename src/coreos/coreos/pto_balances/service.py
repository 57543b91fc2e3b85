from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local, years_between
from ..common.validators import FieldErrors, read_decimal, read_int, read_str
from ..core.constants import BALANCE_YEAR_MAX, BALANCE_YEAR_MIN, DEFAULT_HISTORY_LIMIT
from ..core.enums import TransactionType
from ..core.exceptions import NotFoundError, ValidationError
from ..pto_policies.repository import PtoPolicyRepository
from ..pto_types.repository import PtoTypeRepository
from ..users.repository import UserRepository
from .model import PtoBalance, PtoTransaction
from .repository import PtoBalanceRepository, PtoTransactionRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class PtoBalanceService:
    """Balance arithmetic and the transaction ledger behind it.

    Every change to `balance` or `used_balance` is paired with a
    PtoTransaction row; pending movements are not recorded.
    """

    def __init__(
        self,
        balances: PtoBalanceRepository,
        transactions: PtoTransactionRepository,
        types: PtoTypeRepository,
        users: UserRepository,
        policies: PtoPolicyRepository,
    ):
        self._balances = balances
        self._transactions = transactions
        self._types = types
        self._users = users
        self._policies = policies

    # -------- Ledger --------
    def next_transaction_number(self, *, now: datetime | None = None) -> str:
        now = now or now_local()
        count = self._transactions.count_for_year(now.year)
        return f"TXN-{now.year}-{count + 1:06d}"

    def _record(
        self,
        balance: PtoBalance,
        *,
        transaction_type: TransactionType,
        amount: Decimal,
        before: Decimal,
        after: Decimal,
        description: str,
        created_by_id: Optional[int],
        pto_request_id: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
        now: datetime | None = None,
    ) -> PtoTransaction:
        now = now or now_local()
        txn = PtoTransaction(
            transaction_id=0,
            transaction_number=self.next_transaction_number(now=now),
            user_id=balance.user_id,
            pto_type_id=balance.pto_type_id,
            pto_request_id=pto_request_id,
            transaction_type=transaction_type,
            amount=amount,
            balance_before=before,
            balance_after=after,
            description=description,
            metadata=dict(metadata or {}),
            created_by_id=created_by_id,
            effective_date=now.date(),
            created_at=now,
        )
        txn_id = self._transactions.create(txn)
        return replace(txn, transaction_id=txn_id)

    def add_balance(
        self,
        balance: PtoBalance,
        amount: Decimal,
        *,
        description: Optional[str] = None,
        created_by_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> tuple[PtoBalance, PtoTransaction]:
        updated = balance.with_added(amount)
        self._balances.save(updated)
        txn = self._record(
            balance,
            transaction_type=TransactionType.ACCRUAL,
            amount=amount,
            before=balance.balance,
            after=updated.balance,
            description=description or "Balance adjustment",
            created_by_id=created_by_id,
            now=now,
        )
        return updated, txn

    def subtract_balance(
        self,
        balance: PtoBalance,
        amount: Decimal,
        *,
        description: Optional[str] = None,
        created_by_id: Optional[int] = None,
        pto_request_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> tuple[PtoBalance, PtoTransaction]:
        updated = balance.with_subtracted(amount)
        self._balances.save(updated)
        txn = self._record(
            balance,
            transaction_type=TransactionType.USAGE,
            amount=-amount,
            before=balance.balance,
            after=updated.balance,
            description=description or "PTO usage",
            created_by_id=created_by_id,
            pto_request_id=pto_request_id,
            now=now,
        )
        return updated, txn

    def add_pending_balance(self, balance: PtoBalance, amount: Decimal) -> PtoBalance:
        updated = balance.with_pending_added(amount)
        self._balances.save(updated)
        return updated

    def subtract_pending_balance(self, balance: PtoBalance, amount: Decimal) -> PtoBalance:
        updated = balance.with_pending_subtracted(amount)
        self._balances.save(updated)
        return updated

    def consume_pending(
        self,
        balance: PtoBalance,
        days: Decimal,
        *,
        pto_request_id: int,
        created_by_id: Optional[int],
        description: str,
        now: datetime | None = None,
    ) -> tuple[PtoBalance, PtoTransaction]:
        """Move approved days from pending to used."""
        updated = replace(
            balance,
            pending_balance=max(ZERO, balance.pending_balance - days),
            used_balance=balance.used_balance + days,
        )
        self._balances.save(updated)
        txn = self._record(
            balance,
            transaction_type=TransactionType.USAGE,
            amount=-days,
            before=balance.available_balance,
            after=updated.available_balance,
            description=description,
            created_by_id=created_by_id,
            pto_request_id=pto_request_id,
            now=now,
        )
        return updated, txn

    def restore_used(
        self,
        balance: PtoBalance,
        days: Decimal,
        *,
        pto_request_id: int,
        created_by_id: Optional[int],
        description: str,
        now: datetime | None = None,
    ) -> tuple[PtoBalance, PtoTransaction]:
        """Give back days of an approved request that was cancelled."""
        updated = replace(balance, used_balance=max(ZERO, balance.used_balance - days))
        self._balances.save(updated)
        txn = self._record(
            balance,
            transaction_type=TransactionType.ADJUSTMENT,
            amount=days,
            before=balance.available_balance,
            after=updated.available_balance,
            description=description,
            created_by_id=created_by_id,
            pto_request_id=pto_request_id,
            now=now,
        )
        return updated, txn

    def reset_balance_for_new_year(
        self,
        balance: PtoBalance,
        new_balance: Decimal,
        *,
        created_by_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> tuple[PtoBalance, PtoTransaction]:
        now = now or now_local()
        updated = balance.with_reset(new_balance, year=now.year)
        self._balances.save(updated)
        txn = self._record(
            balance,
            transaction_type=TransactionType.RESET,
            amount=new_balance - balance.balance,
            before=balance.balance,
            after=new_balance,
            description="Annual balance reset",
            created_by_id=created_by_id,
            now=now,
        )
        return updated, txn

    # -------- Lookups --------
    def find_balance(self, *, user_id: int, pto_type_id: int, year: int) -> Optional[PtoBalance]:
        return self._balances.get_for(user_id=user_id, pto_type_id=pto_type_id, year=year)

    def get_balance(self, balance_id: int) -> PtoBalance:
        balance = self._balances.get_by_id(int(balance_id))
        if not balance:
            raise NotFoundError("PTO Balance not found.")
        return balance

    def list_balances(
        self,
        *,
        year: Optional[int] = None,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> Sequence[PtoBalance]:
        year = year or (now or now_local()).year
        return self._balances.list_balances(year=year, user_id=user_id, pto_type_id=pto_type_id)

    def list_transactions(
        self,
        *,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[PtoTransaction]:
        return self._transactions.list_transactions(user_id=user_id, pto_type_id=pto_type_id, limit=limit)

    def user_summary(self, user_id: int, *, year: Optional[int] = None, now: datetime | None = None) -> list[dict]:
        year = year or (now or now_local()).year
        names = {t.pto_type_id: t.name for t in self._types.list_types()}
        return [
            {
                "pto_type_id": b.pto_type_id,
                "pto_type": names.get(b.pto_type_id),
                "balance": b.balance,
                "pending_balance": b.pending_balance,
                "used_balance": b.used_balance,
                "available_balance": b.available_balance,
                "year": b.year,
            }
            for b in self._balances.list_balances(year=year, user_id=int(user_id))
        ]

    # -------- Admin operations --------
    def open_balance(
        self,
        *,
        user_id: int,
        pto_type_id: int,
        year: int,
        amount: Decimal,
        description: str,
        created_by_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> PtoBalance:
        """Create an empty row and credit it, so the ledger starts from zero."""
        empty = PtoBalance(
            balance_id=0,
            user_id=int(user_id),
            pto_type_id=int(pto_type_id),
            balance=ZERO,
            pending_balance=ZERO,
            used_balance=ZERO,
            year=int(year),
        )
        empty = replace(empty, balance_id=self._balances.create(empty))
        updated, _ = self.add_balance(empty, amount, description=description, created_by_id=created_by_id, now=now)
        return updated

    def set_balance(
        self,
        balance: PtoBalance,
        new_amount: Decimal,
        *,
        description: str,
        created_by_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> PtoBalance:
        difference = new_amount - balance.balance
        if difference == 0:
            return balance
        updated, _ = self.add_balance(
            balance, difference, description=description, created_by_id=created_by_id, now=now
        )
        return updated

    def create_balance(
        self, payload: Mapping[str, Any], *, created_by_id: Optional[int] = None, now: datetime | None = None
    ) -> PtoBalance:
        errors = FieldErrors()
        user_id = read_int(payload, "user_id", errors, required=True)
        pto_type_id = read_int(payload, "pto_type_id", errors, required=True)
        amount = read_decimal(payload, "balance", errors, required=True, min_value=ZERO)
        year = read_int(payload, "year", errors, required=True, min_value=BALANCE_YEAR_MIN, max_value=BALANCE_YEAR_MAX)
        if user_id is not None and not errors.has("user_id") and not self._users.get_by_id(user_id):
            errors.add("user_id", "The selected user id is invalid.")
        if pto_type_id is not None and not errors.has("pto_type_id") and not self._types.get_by_id(pto_type_id):
            errors.add("pto_type_id", "The selected pto type id is invalid.")
        errors.raise_if_any()

        if self._balances.get_for(user_id=user_id, pto_type_id=pto_type_id, year=year):
            raise ValidationError("A balance already exists for this user, PTO type, and year.")

        balance = self.open_balance(
            user_id=user_id,
            pto_type_id=pto_type_id,
            year=year,
            amount=amount,
            description="Initial balance",
            created_by_id=created_by_id,
            now=now,
        )
        logger.info(
            "PTO balance created: id=%s user=%s type=%s balance=%s",
            balance.balance_id,
            user_id,
            pto_type_id,
            amount,
        )
        return balance

    def update_balance(
        self,
        balance_id: int,
        payload: Mapping[str, Any],
        *,
        created_by_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> PtoBalance:
        balance = self.get_balance(balance_id)
        errors = FieldErrors()
        amount = read_decimal(payload, "balance", errors, required=True, min_value=ZERO)
        errors.raise_if_any()
        updated = self.set_balance(
            balance, amount, description="Manual balance adjustment", created_by_id=created_by_id, now=now
        )
        logger.info("PTO balance updated: id=%s new balance=%s", balance.balance_id, updated.balance)
        return updated

    def adjust_balance(
        self,
        balance_id: int,
        payload: Mapping[str, Any],
        *,
        created_by_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> tuple[PtoBalance, PtoTransaction]:
        balance = self.get_balance(balance_id)
        errors = FieldErrors()
        amount = read_decimal(payload, "amount", errors, required=True)
        reason = read_str(payload, "reason", errors, required=True, max_length=255)
        if amount is not None and amount == 0:
            errors.add("amount", "The amount must not be zero.")
        errors.raise_if_any()

        updated = balance.with_added(amount)
        self._balances.save(updated)
        txn = self._record(
            balance,
            transaction_type=TransactionType.ADJUSTMENT,
            amount=amount,
            before=balance.balance,
            after=updated.balance,
            description=reason,
            created_by_id=created_by_id,
            now=now,
        )
        logger.info("PTO balance adjusted: id=%s amount=%s reason=%s", balance.balance_id, amount, reason)
        return updated, txn

    def delete_balance(self, balance_id: int) -> None:
        balance = self.get_balance(balance_id)
        self._balances.delete(balance.balance_id)
        logger.info("PTO balance deleted: id=%s", balance.balance_id)

    def reset_year(
        self, year: int, *, created_by_id: Optional[int] = None, now: datetime | None = None
    ) -> dict[str, int]:
        """Open balances for `year` from the previous year's rows and the users' policies."""
        if not BALANCE_YEAR_MIN <= int(year) <= BALANCE_YEAR_MAX:
            msg = f"The year must be between {BALANCE_YEAR_MIN} and {BALANCE_YEAR_MAX}."
            raise ValidationError(msg, errors={"year": [msg]})

        created = skipped_existing = skipped_no_policy = 0
        for previous in self._balances.list_balances(year=int(year) - 1):
            if self._balances.get_for(user_id=previous.user_id, pto_type_id=previous.pto_type_id, year=year):
                skipped_existing += 1
                continue

            policy = self._policies.get_for_user_and_type(user_id=previous.user_id, pto_type_id=previous.pto_type_id)
            if not policy:
                skipped_no_policy += 1
                continue

            pto_type = self._types.get_by_id(previous.pto_type_id)
            user = self._users.get_by_id(previous.user_id)

            new_balance = policy.annual_accrual_amount
            if user and user.start_date:
                service_years = years_between(user.start_date, date(int(year), 1, 1))
                new_balance += policy.bonus_days_per_year * service_years

            if policy.rollover_enabled and pto_type and pto_type.carryover_allowed:
                cap = policy.max_rollover_days if policy.max_rollover_days is not None else previous.balance
                new_balance += min(previous.balance, cap)

            self.open_balance(
                user_id=previous.user_id,
                pto_type_id=previous.pto_type_id,
                year=int(year),
                amount=new_balance,
                description=f"Annual reset for {year}",
                created_by_id=created_by_id,
                now=now,
            )
            created += 1

        logger.info("PTO balances reset for year %s: %s balances created", year, created)
        return {"created": created, "skipped_existing": skipped_existing, "skipped_no_policy": skipped_no_policy}
