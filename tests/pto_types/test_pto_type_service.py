from __future__ import annotations

import pytest

from src.coreos.coreos.core.exceptions import NotFoundError, ValidationError
from src.coreos.coreos.pto_types.model import PtoType, PtoTypeUsage
from src.coreos.coreos.pto_types.service import PtoTypeService
from src.coreos.coreos.users.model import User
from tests.fakes import FakeTypesRepo, FakeUsersRepo


def _service(*types: PtoType, users=(), usage=None) -> PtoTypeService:
    return PtoTypeService(FakeTypesRepo(types, usage=usage), FakeUsersRepo(users))


def test_generate_code_appends_counter_until_free():
    service = _service(
        PtoType(pto_type_id=1, name="Vacation", code="VACA"),
        PtoType(pto_type_id=2, name="Vacation Extra", code="VACA1"),
    )
    assert service.generate_code("Vacancy leave") == "VACA2"
    assert service.generate_code("Sick") == "SICK"


def test_create_type_fills_defaults():
    service = _service(PtoType(pto_type_id=1, name="Vacation", code="VACA", sort_order=10))

    created = service.create_type({"name": "Sick Leave"})

    assert created.code == "SICK"
    assert created.sort_order == 20
    assert created.color == "#3B82F6"
    assert created.uses_balance is True


def test_code_is_uppercased_and_unique():
    service = _service(PtoType(pto_type_id=1, name="Vacation", code="VAC"))
    with pytest.raises(ValidationError) as exc:
        service.create_type({"name": "Holiday", "code": "vac"})
    assert exc.value.errors == {"code": ["The code has already been taken."]}


def test_single_level_type_drops_approvers():
    users = [User(user_id=7, name="Boss", email="boss@example.com", password_hash="x")]
    service = _service(users=users)

    created = service.create_type(
        {"name": "Jury Duty", "disable_hierarchy_approval": True, "specific_approvers": [7]}
    )
    assert created.specific_approvers == ()
    assert created.disable_hierarchy_approval is False

    multi = service.create_type({"name": "Sabbatical", "multi_level_approval": True, "specific_approvers": [7]})
    assert multi.specific_approvers == (7,)


def test_unknown_specific_approver_is_rejected():
    with pytest.raises(ValidationError) as exc:
        _service().create_type({"name": "Sabbatical", "multi_level_approval": True, "specific_approvers": [99]})
    assert "specific_approvers" in exc.value.errors


def test_invalid_color():
    with pytest.raises(ValidationError) as exc:
        _service().create_type({"name": "Sick", "color": "blue"})
    assert "color" in exc.value.errors


def test_explicit_zero_sort_order_is_kept():
    service = _service(PtoType(pto_type_id=1, name="Vacation", code="VACA", sort_order=10))
    assert service.create_type({"name": "Sick Leave", "sort_order": 0}).sort_order == 0


def test_delete_in_use_type_reports_usage():
    usage = PtoTypeUsage(policies_count=2, requests_count=5, active_requests_count=1, users_with_balance_count=3)
    service = _service(PtoType(pto_type_id=1, name="Vacation", code="VAC"), usage={1: usage})

    with pytest.raises(ValidationError, match="Cannot delete PTO Type that is in use.") as exc:
        service.delete_type(1)
    assert exc.value.context == {
        "usage": {
            "policies_count": 2,
            "requests_count": 5,
            "active_requests_count": 1,
            "users_with_balance_count": 3,
            "transactions_count": 0,
        }
    }
    assert service.get_type(1).code == "VAC"


def test_delete_unused_type():
    service = _service(PtoType(pto_type_id=1, name="Vacation", code="VAC"))
    assert service.delete_type(1) == "PTO Type 'Vacation' deleted successfully."
    with pytest.raises(NotFoundError):
        service.get_type(1)


def test_update_sort_orders():
    service = _service(
        PtoType(pto_type_id=1, name="Vacation", code="VAC", sort_order=10),
        PtoType(pto_type_id=2, name="Sick", code="SICK", sort_order=20),
    )

    updated = service.update_sort_orders({"types": [{"id": 1, "sort_order": 30}, {"id": 2, "sort_order": 5}]})

    assert updated == 2
    assert [t.code for t in service.list_types()] == ["SICK", "VAC"]
    assert service.get_type(1).sort_order == 30


def test_update_sort_orders_needs_existing_types():
    service = _service(PtoType(pto_type_id=1, name="Vacation", code="VAC", sort_order=10))

    with pytest.raises(ValidationError) as exc:
        service.update_sort_orders({"types": []})
    assert exc.value.errors == {"types": ["The types field is required."]}

    with pytest.raises(NotFoundError, match="PTO Type not found."):
        service.update_sort_orders({"types": [{"id": 1, "sort_order": 0}, {"id": 9, "sort_order": 1}]})
    assert service.get_type(1).sort_order == 10
