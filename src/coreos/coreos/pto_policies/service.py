from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import FieldErrors, read_bool, read_choice, read_date, read_decimal, read_int, read_str
from ..core.enums import AccrualFrequency
from ..core.exceptions import NotFoundError
from ..pto_balances.model import PtoBalance
from ..pto_balances.repository import PtoBalanceRepository
from ..pto_balances.service import PtoBalanceService
from ..pto_types.repository import PtoTypeRepository
from ..users.repository import UserRepository
from .model import PtoPolicy
from .repository import PtoPolicyRepository

logger = logging.getLogger(__name__)

_DAYS_MAX = Decimal("999.99")
_ZERO = Decimal("0")


class PtoPolicyService:
    def __init__(
        self,
        policies: PtoPolicyRepository,
        types: PtoTypeRepository,
        users: UserRepository,
        balances: PtoBalanceRepository,
        balance_service: PtoBalanceService,
    ):
        self._policies = policies
        self._types = types
        self._users = users
        self._balances = balances
        self._balance_service = balance_service

    def list_policies(
        self,
        *,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
        active_only: bool = False,
    ) -> Sequence[PtoPolicy]:
        return self._policies.list_policies(user_id=user_id, pto_type_id=pto_type_id, active_only=active_only)

    def get_policy(self, policy_id: int) -> PtoPolicy:
        policy = self._policies.get_by_id(int(policy_id))
        if not policy:
            raise NotFoundError("PTO Policy not found.")
        return policy

    def _read(self, payload: Mapping[str, Any], *, current: Optional[PtoPolicy] = None) -> dict[str, Any]:
        errors = FieldErrors()
        data: dict[str, Any] = {
            "name": read_str(payload, "name", errors, max_length=255),
            "description": read_str(payload, "description", errors, max_length=1000),
            "initial_days": read_decimal(payload, "initial_days", errors, required=True, min_value=_ZERO, max_value=_DAYS_MAX),
            "annual_accrual_amount": read_decimal(
                payload, "annual_accrual_amount", errors, required=True, min_value=_ZERO, max_value=_DAYS_MAX
            ),
            "bonus_days_per_year": read_decimal(
                payload, "bonus_days_per_year", errors, min_value=_ZERO, max_value=_DAYS_MAX
            ),
            "max_rollover_days": read_decimal(payload, "max_rollover_days", errors, min_value=_ZERO, max_value=_DAYS_MAX),
            "max_negative_balance": read_decimal(
                payload, "max_negative_balance", errors, min_value=_ZERO, max_value=_DAYS_MAX
            ),
            "years_for_bonus": read_int(payload, "years_for_bonus", errors, min_value=1, max_value=50),
            "accrual_frequency": read_choice(
                payload,
                "accrual_frequency",
                errors,
                [f.value for f in AccrualFrequency],
                default=current.accrual_frequency.value if current else AccrualFrequency.ANNUALLY.value,
            ),
            "effective_date": read_date(payload, "effective_date", errors, required=True),
            "end_date": read_date(payload, "end_date", errors),
            "pto_type_id": read_int(payload, "pto_type_id", errors, required=True),
            "user_id": read_int(payload, "user_id", errors, required=True),
            "rollover_enabled": read_bool(payload, "rollover_enabled", current.rollover_enabled if current else False),
            "prorate_first_year": read_bool(payload, "prorate_first_year", current.prorate_first_year if current else True),
            "is_active": read_bool(payload, "is_active", current.is_active if current else True),
        }

        if data["end_date"] and data["effective_date"] and data["end_date"] <= data["effective_date"]:
            errors.add("end_date", "The end date must be a date after effective date.")
        if data["pto_type_id"] is not None and not errors.has("pto_type_id"):
            if not self._types.get_by_id(data["pto_type_id"]):
                errors.add("pto_type_id", "The selected pto type id is invalid.")
        if data["user_id"] is not None and not errors.has("user_id"):
            if not self._users.get_by_id(data["user_id"]):
                errors.add("user_id", "The selected user id is invalid.")
        errors.raise_if_any()
        return data

    def _default_name(self, user_id: int, pto_type_id: int) -> str:
        user = self._users.get_by_id(user_id)
        pto_type = self._types.get_by_id(pto_type_id)
        return f"{user.name} - {pto_type.name} Policy"

    def _sync_balance(self, policy: PtoPolicy, *, created_by_id: Optional[int], now: datetime | None) -> PtoBalance:
        year = (now or now_local()).year
        existing = self._balances.get_for(user_id=policy.user_id, pto_type_id=policy.pto_type_id, year=year)
        if existing:
            balance = self._balance_service.set_balance(
                existing,
                policy.initial_days,
                description="Policy initial balance update",
                created_by_id=created_by_id,
                now=now,
            )
            logger.info(
                "PTO balance updated for user %s, type %s: %s days",
                policy.user_id,
                policy.pto_type_id,
                policy.initial_days,
            )
            return balance

        balance = self._balance_service.open_balance(
            user_id=policy.user_id,
            pto_type_id=policy.pto_type_id,
            year=year,
            amount=policy.initial_days,
            description="Initial balance",
            created_by_id=created_by_id,
            now=now,
        )
        logger.info(
            "PTO balance created for user %s, type %s: %s days",
            policy.user_id,
            policy.pto_type_id,
            policy.initial_days,
        )
        return balance

    def create_policy(
        self, payload: Mapping[str, Any], *, created_by_id: Optional[int] = None, now: datetime | None = None
    ) -> PtoPolicy:
        data = self._read(payload)
        policy = PtoPolicy(
            policy_id=0,
            name=data["name"] or self._default_name(data["user_id"], data["pto_type_id"]),
            description=data["description"],
            user_id=data["user_id"],
            pto_type_id=data["pto_type_id"],
            initial_days=data["initial_days"],
            annual_accrual_amount=data["annual_accrual_amount"],
            bonus_days_per_year=data["bonus_days_per_year"] or _ZERO,
            rollover_enabled=data["rollover_enabled"],
            max_rollover_days=data["max_rollover_days"],
            max_negative_balance=data["max_negative_balance"] or _ZERO,
            years_for_bonus=data["years_for_bonus"] or 1,
            accrual_frequency=AccrualFrequency(data["accrual_frequency"]),
            prorate_first_year=data["prorate_first_year"],
            effective_date=data["effective_date"],
            end_date=data["end_date"],
            is_active=data["is_active"],
        )
        policy = replace(policy, policy_id=self._policies.create(policy))
        self._sync_balance(policy, created_by_id=created_by_id, now=now)
        logger.info("PTO policy created: id=%s name=%s", policy.policy_id, policy.name)
        return policy

    def update_policy(
        self,
        policy_id: int,
        payload: Mapping[str, Any],
        *,
        created_by_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> PtoPolicy:
        current = self.get_policy(policy_id)
        data = self._read(payload, current=current)
        updated = replace(
            current,
            name=data["name"] or current.name,
            description=data["description"],
            user_id=data["user_id"],
            pto_type_id=data["pto_type_id"],
            initial_days=data["initial_days"],
            annual_accrual_amount=data["annual_accrual_amount"],
            bonus_days_per_year=data["bonus_days_per_year"] or _ZERO,
            rollover_enabled=data["rollover_enabled"],
            max_rollover_days=data["max_rollover_days"],
            max_negative_balance=data["max_negative_balance"] or _ZERO,
            years_for_bonus=data["years_for_bonus"] or 1,
            accrual_frequency=AccrualFrequency(data["accrual_frequency"]),
            prorate_first_year=data["prorate_first_year"],
            effective_date=data["effective_date"],
            end_date=data["end_date"],
            is_active=data["is_active"],
        )
        self._policies.update(updated)
        if updated.initial_days != current.initial_days:
            self._sync_balance(updated, created_by_id=created_by_id, now=now)
        logger.info("PTO policy updated: id=%s", updated.policy_id)
        return updated

    def delete_policy(self, policy_id: int) -> None:
        policy = self.get_policy(policy_id)
        self._policies.delete(policy.policy_id)
        removed = self._balances.delete_for(user_id=policy.user_id, pto_type_id=policy.pto_type_id)
        logger.info("PTO policy deleted: id=%s (%s balance rows removed)", policy.policy_id, removed)

    def policy_meta(self, policies: Sequence[PtoPolicy], *, now: datetime | None = None) -> dict[str, int]:
        today = (now or now_local()).date()
        return {
            "total": len(policies),
            "active_count": sum(1 for p in policies if p.is_currently_active(today)),
        }
