from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from src.coreos.coreos.core.enums import TransactionType
from src.coreos.coreos.core.exceptions import ValidationError
from src.coreos.coreos.pto_balances.model import PtoBalance
from src.coreos.coreos.pto_balances.service import PtoBalanceService
from src.coreos.coreos.pto_policies.model import PtoPolicy
from src.coreos.coreos.pto_types.model import PtoType
from src.coreos.coreos.users.model import User
from tests.fakes import FakeBalancesRepo, FakePoliciesRepo, FakeTransactionsRepo, FakeTypesRepo, FakeUsersRepo

NOW = datetime(2025, 3, 10, 9, 0)


def _balance(**kw) -> PtoBalance:
    data = dict(
        balance_id=1,
        user_id=1,
        pto_type_id=1,
        balance=Decimal("10"),
        pending_balance=Decimal("0"),
        used_balance=Decimal("0"),
        year=2025,
    )
    data.update(kw)
    return PtoBalance(**data)


def _service(balances=(), policies=(), types=None, users=None):
    balances_repo = FakeBalancesRepo(balances)
    transactions = FakeTransactionsRepo()
    service = PtoBalanceService(
        balances_repo,
        transactions,
        FakeTypesRepo(types or [PtoType(pto_type_id=1, name="Vacation", code="VAC")]),
        FakeUsersRepo(users or [User(user_id=1, name="Ana", email="ana@example.com", password_hash="x")]),
        FakePoliciesRepo(policies),
    )
    return service, balances_repo, transactions


def test_available_balance():
    balance = _balance(balance=Decimal("10"), used_balance=Decimal("3"), pending_balance=Decimal("2"))
    assert balance.available_balance == Decimal("5")


def test_add_and_subtract_write_transactions():
    service, balances, transactions = _service([_balance()])

    added, txn = service.add_balance(_balance(), Decimal("2"), description="Bonus", now=NOW)
    assert added.balance == Decimal("12")
    assert txn.transaction_type == TransactionType.ACCRUAL
    assert (txn.balance_before, txn.balance_after) == (Decimal("10"), Decimal("12"))
    assert txn.transaction_number == "TXN-2025-000001"

    used, txn = service.subtract_balance(added, Decimal("3"), now=NOW)
    assert (used.balance, used.used_balance) == (Decimal("9"), Decimal("3"))
    assert txn.amount == Decimal("-3")
    assert txn.transaction_number == "TXN-2025-000002"
    assert balances.get_by_id(1) == used
    assert len(transactions.items) == 2


def test_pending_never_goes_negative_and_is_not_ledgered():
    service, _, transactions = _service([_balance()])

    held = service.add_pending_balance(_balance(), Decimal("1.5"))
    assert held.pending_balance == Decimal("1.5")

    released = service.subtract_pending_balance(held, Decimal("4"))
    assert released.pending_balance == Decimal("0")
    assert transactions.items == []


def test_consume_pending_moves_days_to_used():
    service, _, transactions = _service()
    start = _balance(pending_balance=Decimal("2"))

    updated, txn = service.consume_pending(start, Decimal("2"), pto_request_id=4, created_by_id=9, description="ok", now=NOW)

    assert (updated.pending_balance, updated.used_balance, updated.balance) == (Decimal("0"), Decimal("2"), Decimal("10"))
    assert txn.pto_request_id == 4
    assert txn.balance_before == Decimal("8")
    assert txn.balance_after == Decimal("8")


def test_create_balance_rejects_duplicates():
    service, _, transactions = _service([_balance()])
    with pytest.raises(ValidationError, match="already exists"):
        service.create_balance({"user_id": 1, "pto_type_id": 1, "balance": "5", "year": 2025}, now=NOW)

    created = service.create_balance({"user_id": 1, "pto_type_id": 1, "balance": "5", "year": 2026}, now=NOW)
    assert created.balance == Decimal("5")
    assert transactions.items[-1].description == "Initial balance"


def test_adjust_balance_requires_reason_and_non_zero_amount():
    service, _, _ = _service([_balance()])
    with pytest.raises(ValidationError) as exc:
        service.adjust_balance(1, {"amount": "0"})
    assert set(exc.value.errors) == {"amount", "reason"}

    updated, txn = service.adjust_balance(1, {"amount": "-1.5", "reason": "Correction"}, now=NOW)
    assert updated.balance == Decimal("8.5")
    assert txn.transaction_type == TransactionType.ADJUSTMENT


def test_reset_year_applies_bonus_and_rollover():
    policy = PtoPolicy(
        policy_id=1,
        name="Standard",
        user_id=1,
        pto_type_id=1,
        initial_days=Decimal("10"),
        annual_accrual_amount=Decimal("10"),
        effective_date=date(2020, 1, 1),
        bonus_days_per_year=Decimal("1"),
        rollover_enabled=True,
        max_rollover_days=Decimal("2"),
    )
    users = [User(user_id=1, name="Ana", email="ana@example.com", password_hash="x", start_date=date(2022, 6, 1))]
    types = [PtoType(pto_type_id=1, name="Vacation", code="VAC", carryover_allowed=True)]
    previous = [
        _balance(balance_id=1, year=2024, balance=Decimal("5")),
        _balance(balance_id=2, user_id=2, year=2024),
    ]
    service, balances, _ = _service(previous, [policy], types, users)

    result = service.reset_year(2025, now=NOW)

    assert result == {"created": 1, "skipped_existing": 0, "skipped_no_policy": 1}
    opened = balances.get_for(user_id=1, pto_type_id=1, year=2025)
    # 10 accrual + 2 years of service bonus + capped rollover of 2
    assert opened.balance == Decimal("14")

    again = service.reset_year(2025, now=NOW)
    assert again["skipped_existing"] == 1


def test_reset_year_rejects_out_of_range_year():
    service, _, _ = _service()
    with pytest.raises(ValidationError):
        service.reset_year(1999)


def test_reset_balance_for_new_year_clears_usage():
    current = _balance(balance=Decimal("12"), used_balance=Decimal("7"), pending_balance=Decimal("2"))
    service, balances, transactions = _service([current])

    updated, txn = service.reset_balance_for_new_year(
        current, Decimal("15"), created_by_id=1, now=datetime(2026, 1, 1, 0, 5)
    )

    assert (updated.balance, updated.used_balance, updated.pending_balance) == (Decimal("15"), Decimal("0"), Decimal("0"))
    assert updated.year == 2026
    assert balances.get_by_id(1) == updated
    assert txn.transaction_type == TransactionType.RESET
    assert txn.amount == Decimal("3")
    assert (txn.balance_before, txn.balance_after) == (Decimal("12"), Decimal("15"))
    assert txn.description == "Annual balance reset"
    assert txn.created_by_id == 1
    assert transactions.items == [txn]
