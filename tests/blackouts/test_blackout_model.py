from __future__ import annotations

from datetime import date

from src.coreos.coreos.blackouts.model import PtoBlackout
from src.coreos.coreos.users.model import User


def _blackout(**kw) -> PtoBlackout:
    data = dict(blackout_id=1, name="Year end", start_date=date(2025, 12, 20), end_date=date(2025, 12, 31))
    data.update(kw)
    return PtoBlackout(**data)


def test_period_overlap_is_inclusive():
    blackout = _blackout()
    assert blackout.overlaps_with_date_range(date(2025, 12, 31), date(2026, 1, 2))
    assert blackout.overlaps_with_date_range(date(2025, 12, 15), date(2025, 12, 20))
    assert not blackout.overlaps_with_date_range(date(2025, 12, 1), date(2025, 12, 19))


def test_recurring_overlap_uses_weekdays():
    # Fridays only
    blackout = _blackout(is_recurring=True, recurring_days=(5,))
    assert blackout.overlaps_with_date_range(date(2025, 3, 10), date(2025, 3, 14))
    assert not blackout.overlaps_with_date_range(date(2025, 3, 10), date(2025, 3, 13))
    assert blackout.get_conflicting_dates(date(2025, 3, 1), date(2025, 3, 15)) == [date(2025, 3, 7), date(2025, 3, 14)]


def test_recurring_without_days_never_overlaps():
    blackout = _blackout(is_recurring=True, recurring_days=())
    assert not blackout.overlaps_with_date_range(date(2025, 1, 1), date(2025, 12, 31))


def test_recurring_window_bounds():
    blackout = _blackout(
        is_recurring=True,
        recurring_days=(1,),
        recurring_start_date=date(2025, 3, 1),
        recurring_end_date=date(2025, 3, 31),
    )
    assert blackout.conflicts_with_date(date(2025, 3, 10))
    assert not blackout.conflicts_with_date(date(2025, 4, 7))
    assert blackout.formatted_date_range == "Every Monday (Effective: Mar 01, 2025 - Mar 31, 2025)"


def test_formatted_date_range_for_periods():
    assert _blackout().formatted_date_range == "Dec 20, 2025 - Dec 31, 2025"
    single = _blackout(end_date=date(2025, 12, 20))
    assert single.formatted_date_range == "Dec 20, 2025"


def test_scope_rules():
    user = User(user_id=4, name="Ana", email="ana@example.com", password_hash="x", position_id=2, department_ids=(7,))
    assert _blackout(is_company_wide=True).applies_to_user(user)
    assert _blackout(user_ids=(4,)).applies_to_user(user)
    assert _blackout(position_id=2).applies_to_user(user)
    assert _blackout(department_ids=(7, 8)).applies_to_user(user)
    assert not _blackout(department_ids=(8,)).applies_to_user(user)

    assert _blackout().applies_to_pto_type(3)
    assert not _blackout(pto_type_ids=(1,)).applies_to_pto_type(3)
