from __future__ import annotations

from datetime import date

import pytest

from src.coreos.coreos.blackouts.service import BlackoutService
from src.coreos.coreos.core.enums import RestrictionType
from src.coreos.coreos.core.exceptions import NotFoundError, ValidationError
from src.coreos.coreos.pto_types.model import PtoType
from src.coreos.coreos.users.model import User
from tests.fakes import PtoStack

ANA = User(user_id=1, name="Ana", email="ana@example.com", password_hash="x")


def _service():
    stack = PtoStack(users=[ANA], types=[PtoType(pto_type_id=1, name="Vacation", code="VAC")])
    service = BlackoutService(
        stack.blackouts, stack.users, stack.types, stack.positions, stack.departments, stack.validation
    )
    return service, stack


def _payload(**kw):
    data = {
        "name": "Inventory week",
        "start_date": "2025-07-01",
        "end_date": "2025-07-04",
        "restriction_type": "full_block",
        "is_company_wide": "1",
    }
    data.update(kw)
    return data


def test_create_and_toggle():
    service, _ = _service()
    blackout = service.create_blackout(_payload(pto_type_ids="1"))

    assert blackout.blackout_id == 1
    assert blackout.restriction_type == RestrictionType.FULL_BLOCK
    assert blackout.pto_type_ids == (1,)
    assert blackout.is_active
    assert blackout.recurring_days == ()

    assert not service.toggle_active(1).is_active
    assert service.list_blackouts(active_only=True) == []


def test_create_validates_references_and_dates():
    service, _ = _service()
    with pytest.raises(ValidationError) as exc:
        service.create_blackout(
            _payload(end_date="2025-06-01", user_ids=[1, 9], pto_type_ids=[4], restriction_type="sometimes")
        )
    errors = exc.value.errors
    assert errors["end_date"] == ["The end date must be a date after or equal to start date."]
    assert errors["user_ids"] == ["The selected user ids is invalid."]
    assert errors["pto_type_ids"] == ["The selected pto type ids is invalid."]
    assert errors["restriction_type"] == ["The selected restriction type is invalid."]


def test_recurring_needs_weekdays():
    service, _ = _service()
    with pytest.raises(ValidationError) as exc:
        service.create_blackout(_payload(is_recurring="1"))
    assert "recurring_days" in exc.value.errors

    with pytest.raises(ValidationError) as exc:
        service.create_blackout(_payload(is_recurring="1", recurring_days=[1, 7]))
    assert exc.value.errors["recurring_days"] == ["The recurring days must be between 0 and 6."]

    blackout = service.create_blackout(_payload(is_recurring="1", recurring_days=[1, 3]))
    assert blackout.recurring_days == (1, 3)


def test_update_and_delete():
    service, _ = _service()
    service.create_blackout(_payload())

    updated = service.update_blackout(1, _payload(name="Stocktake", restriction_type="warning_only"))
    assert updated.name == "Stocktake"
    assert service.get_blackout(1).restriction_type == RestrictionType.WARNING_ONLY

    service.delete_blackout(1)
    with pytest.raises(NotFoundError, match="Blackout period not found."):
        service.get_blackout(1)


def test_validate_range_and_blackouts_for_user():
    service, _ = _service()
    service.create_blackout(_payload())

    result = service.validate_range(
        {"pto_type_id": 1, "start_date": "2025-07-02", "end_date": "2025-07-02"}, default_user_id=1
    )
    assert result.has_conflicts
    assert not result.can_submit

    clear = service.validate_range(
        {"pto_type_id": 1, "start_date": "2025-08-02", "end_date": "2025-08-03"}, default_user_id=1
    )
    assert clear.can_submit

    found = service.blackouts_for_user({"user_id": 1, "start_date": "2025-07-01", "end_date": "2025-07-31"})
    assert [b.start_date for b in found] == [date(2025, 7, 1)]

    with pytest.raises(ValidationError) as exc:
        service.blackouts_for_user({"user_id": 3, "start_date": "2025-07-01", "end_date": "2025-07-31"})
    assert exc.value.errors["user_id"] == ["The selected user id is invalid."]
