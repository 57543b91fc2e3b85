from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from src.coreos.coreos.blackouts.model import PtoBlackout
from src.coreos.coreos.core.enums import ApprovalStatus, RequestStatus, TransactionType
from src.coreos.coreos.core.exceptions import AuthorizationError, ValidationError
from src.coreos.coreos.pto_balances.model import PtoBalance
from src.coreos.coreos.pto_requests.service import BLACKOUT_DENIAL_REASON
from src.coreos.coreos.pto_types.model import PtoType
from src.coreos.coreos.users.model import User
from tests.fakes import PtoStack

NOW = datetime(2025, 3, 1, 9, 0)

EMPLOYEE = User(user_id=1, name="Ana", email="ana@example.com", password_hash="x", manager_id=2)
MANAGER = User(user_id=2, name="Ben", email="ben@example.com", password_hash="x")
HR = User(user_id=3, name="Cleo", email="cleo@example.com", password_hash="x")
DEE = User(user_id=4, name="Dee", email="dee@example.com", password_hash="x")

VACATION = PtoType(pto_type_id=1, name="Vacation", code="VAC")
SABBATICAL = PtoType(pto_type_id=2, name="Sabbatical", code="SAB", multi_level_approval=True, specific_approvers=(3,))
UNPAID = PtoType(pto_type_id=3, name="Unpaid", code="UNP", uses_balance=False)

INVENTORY = PtoBlackout(
    blackout_id=1,
    name="Inventory",
    start_date=date(2025, 3, 11),
    end_date=date(2025, 3, 11),
    is_company_wide=True,
)


def _balance(balance_id: int, pto_type_id: int, amount: str = "10") -> PtoBalance:
    return PtoBalance(
        balance_id=balance_id,
        user_id=1,
        pto_type_id=pto_type_id,
        balance=Decimal(amount),
        pending_balance=Decimal("0"),
        used_balance=Decimal("0"),
        year=2025,
    )


def _stack(balances=None, **kw) -> PtoStack:
    return PtoStack(
        users=[EMPLOYEE, MANAGER, HR],
        types=[VACATION, SABBATICAL, UNPAID],
        balances=balances or [_balance(1, 1), _balance(2, 2)],
        **kw,
    )


def _submit(stack: PtoStack, **payload):
    data = {"pto_type_id": 1, "start_date": "2025-03-10", "end_date": "2025-03-12"}
    data.update(payload)
    return stack.request_service.create_request(data, user=EMPLOYEE, now=NOW)


def test_submit_holds_pending_days():
    stack = _stack()

    request, validation = _submit(stack)

    assert request.status == RequestStatus.PENDING
    assert request.total_days == Decimal("3")
    assert request.request_number == f"PTO-1-{int(NOW.timestamp())}"
    assert validation.can_submit
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("3")


def test_submit_validates_required_fields_and_date_order():
    stack = _stack()
    with pytest.raises(ValidationError) as exc:
        stack.request_service.create_request(
            {"start_date": "2025-03-12", "end_date": "2025-03-10"}, user=EMPLOYEE, now=NOW
        )
    assert set(exc.value.errors) == {"pto_type_id", "end_date"}


def test_insufficient_balance_counts_pending_requests():
    stack = _stack()
    _submit(stack, start_date="2025-03-03", end_date="2025-03-07")

    with pytest.raises(ValidationError) as exc:
        _submit(stack, start_date="2025-03-10", end_date="2025-03-17")

    assert exc.value.message == "Insufficient PTO balance."
    assert exc.value.context["available"] == Decimal("5")
    assert exc.value.context["requested"] == Decimal("6")


def test_type_without_balance_skips_balance_check():
    stack = _stack()
    request, _ = _submit(stack, pto_type_id=3, start_date="2025-06-02", end_date="2025-06-30")
    assert request.total_days == Decimal("21")


def test_blackout_conflict_denies_on_submit():
    blackout = PtoBlackout(
        blackout_id=1,
        name="Inventory",
        start_date=date(2025, 3, 11),
        end_date=date(2025, 3, 11),
        is_company_wide=True,
    )
    stack = _stack(blackouts=[blackout])

    with pytest.raises(ValidationError) as exc:
        _submit(stack)

    assert exc.value.message == BLACKOUT_DENIAL_REASON
    assert exc.value.context["blackout_conflicts"] is True
    stored = stack.requests.get_by_id(exc.value.context["request_id"])
    assert stored.status == RequestStatus.DENIED
    assert stored.has_blackout_conflicts
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("0")


def test_emergency_request_goes_through_with_conflict_flagged():
    blackout = PtoBlackout(
        blackout_id=1,
        name="Inventory",
        start_date=date(2025, 3, 11),
        end_date=date(2025, 3, 11),
        is_company_wide=True,
    )
    stack = _stack(blackouts=[blackout])

    request, validation = _submit(stack, is_emergency_override=True)

    assert validation.requires_override
    assert request.is_emergency_override
    assert request.status == RequestStatus.PENDING

    updated, message = stack.request_service.process_emergency_override(
        request.request_id, {"approved": True}, approver=HR, now=NOW
    )
    assert updated.override_approved
    assert message.startswith("Emergency override approved.")


def test_admin_approval_consumes_pending():
    stack = _stack()
    request, _ = _submit(stack)

    approved = stack.approval_service.approve(request.request_id, {}, approver=HR, can_approve_any=True, now=NOW)

    assert approved.status == RequestStatus.APPROVED
    assert approved.approved_by_id == HR.user_id
    balance = stack.balance(1, 1, 2025)
    assert (balance.pending_balance, balance.used_balance) == (Decimal("0"), Decimal("3"))
    assert stack.transactions.items[-1].transaction_type == TransactionType.USAGE

    with pytest.raises(ValidationError, match="already been processed"):
        stack.approval_service.approve(request.request_id, {}, approver=HR, can_approve_any=True, now=NOW)


def test_approver_outside_the_chain_is_refused():
    stack = _stack()
    request, _ = _submit(stack)
    with pytest.raises(AuthorizationError):
        stack.approval_service.approve(request.request_id, {}, approver=MANAGER, now=NOW)


def test_multi_level_chain_needs_every_approver():
    stack = _stack()
    request, _ = _submit(stack, pto_type_id=2)

    chain = stack.approval_service.approval_chain(request.request_id)
    assert [(a.approver_id, a.level) for a in chain] == [(2, 1), (3, 2)]

    after_first = stack.approval_service.approve(request.request_id, {"comments": "ok"}, approver=MANAGER, now=NOW)
    assert after_first.status == RequestStatus.PENDING
    assert [r.request_id for r in stack.approval_service.pending_approvals(HR)] == [request.request_id]

    final = stack.approval_service.approve(request.request_id, {}, approver=HR, now=NOW)
    assert final.status == RequestStatus.APPROVED
    statuses = [a.status for a in stack.approval_service.approval_chain(request.request_id)]
    assert statuses == [ApprovalStatus.APPROVED, ApprovalStatus.APPROVED]


def test_deny_requires_comments_and_releases_pending():
    stack = _stack()
    request, _ = _submit(stack)

    with pytest.raises(ValidationError) as exc:
        stack.approval_service.deny(request.request_id, {}, approver=HR, can_approve_any=True, now=NOW)
    assert "comments" in exc.value.errors

    denied = stack.approval_service.deny(
        request.request_id, {"comments": "Short staffed"}, approver=HR, can_approve_any=True, now=NOW
    )
    assert denied.status == RequestStatus.DENIED
    assert denied.denial_reason == "Short staffed"
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("0")


def test_cancel_pending_request():
    stack = _stack()
    request, _ = _submit(stack)

    cancelled = stack.request_service.cancel_request(request.request_id, now=NOW)

    assert cancelled.status == RequestStatus.CANCELLED
    assert cancelled.cancelled_at == NOW
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("0")
    with pytest.raises(ValidationError):
        stack.request_service.cancel_request(request.request_id, now=NOW)


def test_cancel_own_approved_request_needs_notice():
    stack = _stack()
    request, _ = _submit(stack)
    stack.approval_service.approve(request.request_id, {}, approver=HR, can_approve_any=True, now=NOW)

    with pytest.raises(ValidationError, match="24 hours notice"):
        stack.request_service.cancel_own_request(request.request_id, user=EMPLOYEE, now=datetime(2025, 3, 9, 12, 0))

    cancelled = stack.request_service.cancel_own_request(request.request_id, user=EMPLOYEE, now=NOW)
    assert cancelled.status == RequestStatus.CANCELLED
    assert stack.balance(1, 1, 2025).used_balance == Decimal("0")
    assert stack.transactions.items[-1].transaction_type == TransactionType.ADJUSTMENT


def test_only_owner_can_cancel_or_update():
    stack = _stack()
    request, _ = _submit(stack)

    with pytest.raises(AuthorizationError):
        stack.request_service.cancel_own_request(request.request_id, user=MANAGER, now=NOW)
    with pytest.raises(AuthorizationError):
        stack.request_service.update_request(
            request.request_id,
            {"start_date": "2025-03-10", "end_date": "2025-03-10", "start_time": "full_day", "end_time": "full_day"},
            actor=MANAGER,
            now=NOW,
        )


def test_update_recalculates_days_and_pending():
    stack = _stack()
    request, _ = _submit(stack)

    updated, _ = stack.request_service.update_request(
        request.request_id,
        {"start_date": "2025-03-10", "end_date": "2025-03-10", "start_time": "morning", "end_time": "morning"},
        actor=EMPLOYEE,
        now=NOW,
    )

    assert updated.total_days == Decimal("0.5")
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("0.5")


def test_pending_days_only_count_against_the_same_year():
    stack = _stack(balances=[_balance(1, 1), _balance(2, 2), replace(_balance(3, 1), year=2026)])
    _submit(stack, start_date="2026-01-05", end_date="2026-01-09")

    request, _ = _submit(stack, start_date="2025-03-03", end_date="2025-03-14")

    assert request.total_days == Decimal("10")
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("10")
    assert stack.balance(1, 1, 2026).pending_balance == Decimal("5")


def test_delete_pending_request_releases_days():
    stack = _stack()
    request, _ = _submit(stack)

    stack.request_service.delete_request(request.request_id)

    assert stack.requests.get_by_id(request.request_id) is None
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("0")


def test_auto_reject_when_a_blackout_is_added_later():
    stack = _stack()
    request, _ = _submit(stack)
    assert stack.request_service.auto_reject_for_blackout(request.request_id, now=NOW).is_pending

    stack.blackouts.create(INVENTORY)
    rejected = stack.request_service.auto_reject_for_blackout(request.request_id, now=NOW)

    assert rejected.status == RequestStatus.DENIED
    assert rejected.denied_at == NOW
    assert rejected.denial_reason == (
        "Automatically rejected due to blackout period conflicts:\n"
        "PTO requests are blocked during: Inventory (Mar 11, 2025)"
    )
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("0")
    assert stack.request_service.auto_reject_for_blackout(request.request_id, now=NOW) == rejected


def test_approve_with_blackout_review_needs_acknowledgement():
    stack = _stack(blackouts=[INVENTORY])
    request, _ = _submit(stack, is_emergency_override=True)
    review = stack.approval_service.approve_with_blackout_review

    with pytest.raises(ValidationError) as exc:
        review(request.request_id, {}, approver=HR, now=NOW)
    assert "acknowledge_blackout_risks" in exc.value.errors
    with pytest.raises(ValidationError, match="Must acknowledge blackout risks before approval"):
        review(request.request_id, {"acknowledge_blackout_risks": False}, approver=HR, now=NOW)
    assert stack.balance(1, 1, 2025).pending_balance == Decimal("3")

    approved = review(
        request.request_id,
        {"acknowledge_blackout_risks": True, "override_justification": "Customer escalation"},
        approver=HR,
        now=NOW,
    )

    assert approved.status == RequestStatus.APPROVED
    assert approved.approval_notes.split("\n") == [
        "",
        "ADMIN APPROVAL WITH BLACKOUT REVIEW",
        "Approved by: Cleo",
        "Approval date: Mar 01, 2025 09:00:00",
        "",
        "OVERRIDE JUSTIFICATION:",
        "Customer escalation",
        "",
        "BLACKOUT ANALYSIS REVIEWED:",
        "• CONFLICT: Inventory - PTO requests are blocked during: Inventory (Mar 11, 2025)",
        "",
        "✓ Blackout risks acknowledged and reviewed by admin",
    ]
    balance = stack.balance(1, 1, 2025)
    assert (balance.pending_balance, balance.used_balance) == (Decimal("0"), Decimal("3"))
    assert stack.transactions.items[-1].transaction_type == TransactionType.USAGE


def test_approve_permission_only_covers_requests_without_a_chain():
    stack = _stack()
    chained, _ = _submit(stack, pto_type_id=2)
    plain, _ = _submit(stack, start_date="2025-04-07", end_date="2025-04-08")

    with pytest.raises(AuthorizationError):
        stack.approval_service.approve(chained.request_id, {}, approver=DEE, can_approve=True, now=NOW)
    assert stack.requests.get_by_id(chained.request_id).is_pending

    approved = stack.approval_service.approve(plain.request_id, {}, approver=DEE, can_approve=True, now=NOW)
    assert approved.status == RequestStatus.APPROVED
    assert [(a.approver_id, a.level) for a in stack.approval_service.approval_chain(plain.request_id)] == [(4, 1)]


def test_admin_decision_is_recorded_at_the_current_chain_level():
    stack = _stack()
    request, _ = _submit(stack, pto_type_id=2)
    stack.approval_service.approve(request.request_id, {}, approver=MANAGER, now=NOW)

    stack.approval_service.approve(request.request_id, {}, approver=DEE, can_approve_any=True, now=NOW)

    chain = stack.approval_service.approval_chain(request.request_id)
    assert [(a.approver_id, a.level, a.status) for a in chain] == [
        (2, 1, ApprovalStatus.APPROVED),
        (4, 2, ApprovalStatus.APPROVED),
    ]


def test_admin_denial_of_a_fresh_chain_lands_on_level_one():
    stack = _stack()
    request, _ = _submit(stack, pto_type_id=2)

    denied = stack.approval_service.deny(
        request.request_id, {"comments": "Not this quarter"}, approver=DEE, can_approve_any=True, now=NOW
    )

    assert denied.status == RequestStatus.DENIED
    chain = stack.approval_service.approval_chain(request.request_id)
    assert [(a.approver_id, a.level, a.status) for a in chain] == [(4, 1, ApprovalStatus.DENIED)]
    assert stack.balance(1, 2, 2025).pending_balance == Decimal("0")
