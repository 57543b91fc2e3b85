from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from src.coreos.coreos.core.enums import AccrualFrequency, TransactionType
from src.coreos.coreos.core.exceptions import NotFoundError, ValidationError
from src.coreos.coreos.pto_policies.model import PtoPolicy
from src.coreos.coreos.pto_policies.service import PtoPolicyService
from src.coreos.coreos.pto_types.model import PtoType
from src.coreos.coreos.users.model import User
from tests.fakes import PtoStack

NOW = datetime(2025, 3, 10, 9, 0)


def _stack() -> PtoStack:
    return PtoStack(
        users=[User(user_id=1, name="Ana", email="ana@example.com", password_hash="x")],
        types=[PtoType(pto_type_id=1, name="Vacation", code="VAC")],
    )


def _service(stack: PtoStack) -> PtoPolicyService:
    return PtoPolicyService(stack.policies, stack.types, stack.users, stack.balances, stack.balance_service)


def _payload(**kw):
    data = {
        "user_id": 1,
        "pto_type_id": 1,
        "initial_days": "15",
        "annual_accrual_amount": "15",
        "effective_date": "2025-01-01",
    }
    data.update(kw)
    return data


def test_create_policy_names_it_and_opens_balance():
    stack = _stack()
    policy = _service(stack).create_policy(_payload(), created_by_id=9, now=NOW)

    assert policy.name == "Ana - Vacation Policy"
    assert policy.accrual_frequency == AccrualFrequency.ANNUALLY
    assert policy.prorate_first_year
    assert stack.balance(1, 1, 2025).balance == Decimal("15")
    [txn] = stack.transactions.items
    assert txn.transaction_type == TransactionType.ACCRUAL
    assert txn.description == "Initial balance"
    assert txn.created_by_id == 9


def test_update_policy_moves_balance_by_difference():
    stack = _stack()
    service = _service(stack)
    policy = service.create_policy(_payload(), now=NOW)

    updated = service.update_policy(policy.policy_id, _payload(initial_days="12", name="Custom"), now=NOW)

    assert updated.name == "Custom"
    assert stack.balance(1, 1, 2025).balance == Decimal("12")
    last = stack.transactions.items[-1]
    assert last.transaction_type == TransactionType.ACCRUAL
    assert last.amount == Decimal("-3")
    assert last.description == "Policy initial balance update"


def test_update_without_initial_days_change_leaves_ledger_alone():
    stack = _stack()
    service = _service(stack)
    policy = service.create_policy(_payload(), now=NOW)

    service.update_policy(policy.policy_id, _payload(annual_accrual_amount="20"), now=NOW)

    assert len(stack.transactions.items) == 1


def test_policy_validation():
    service = _service(_stack())
    with pytest.raises(ValidationError) as exc:
        service.create_policy(
            _payload(user_id=5, initial_days="-1", effective_date="2025-06-01", end_date="2025-01-01"), now=NOW
        )
    assert exc.value.errors["user_id"] == ["The selected user id is invalid."]
    assert exc.value.errors["initial_days"] == ["The initial days must be at least 0."]
    assert exc.value.errors["end_date"] == ["The end date must be a date after effective date."]


def test_delete_policy_removes_balances():
    stack = _stack()
    service = _service(stack)
    policy = service.create_policy(_payload(), now=NOW)

    service.delete_policy(policy.policy_id)

    assert stack.balance(1, 1, 2025) is None
    with pytest.raises(NotFoundError, match="PTO Policy not found."):
        service.get_policy(policy.policy_id)


def test_currently_active_window():
    policy = PtoPolicy(
        policy_id=1,
        name="P",
        user_id=1,
        pto_type_id=1,
        initial_days=Decimal("0"),
        annual_accrual_amount=Decimal("0"),
        effective_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
    )
    assert policy.is_currently_active(date(2025, 6, 1))
    assert not policy.is_currently_active(date(2024, 12, 31))
    assert not policy.is_currently_active(date(2026, 1, 1))
    assert _service(_stack()).policy_meta([policy], now=NOW) == {"total": 1, "active_count": 1}
