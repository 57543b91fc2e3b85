from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, Sequence

from ..common.validators import (
    FieldErrors,
    check_hex_color,
    read_bool,
    read_int,
    read_int_list,
    read_str,
)
from ..core.constants import DEFAULT_PTO_COLOR, PTO_TYPE_CODE_MAX_LENGTH, PTO_TYPE_SORT_STEP
from ..core.exceptions import NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import PtoType, PtoTypeUsage
from .repository import PtoTypeRepository

logger = logging.getLogger(__name__)

_FLAGS_DEFAULTS = {
    "multi_level_approval": False,
    "disable_hierarchy_approval": False,
    "uses_balance": True,
    "carryover_allowed": False,
    "negative_allowed": False,
    "affects_schedule": False,
    "show_in_department_calendar": True,
    "is_active": True,
}


class PtoTypeService:
    """Administration of PTO types (vacation, sick, ...)."""

    def __init__(self, types: PtoTypeRepository, users: UserRepository):
        self._types = types
        self._users = users

    def list_types(self, *, active_only: bool = False, search: Optional[str] = None) -> Sequence[PtoType]:
        return self._types.list_types(active_only=active_only, search=(search or "").strip() or None)

    def get_type(self, pto_type_id: int) -> PtoType:
        pto_type = self._types.get_by_id(int(pto_type_id))
        if not pto_type:
            raise NotFoundError("PTO Type not found.")
        return pto_type

    def usage_stats(self, pto_type_id: int) -> PtoTypeUsage:
        return self._types.usage(self.get_type(pto_type_id).pto_type_id)

    def generate_code(self, name: str) -> str:
        """First four letters of the name, suffixed with 1, 2, ... until unused."""
        base = name[:4].upper()
        code = base
        counter = 1
        while self._types.code_exists(code):
            code = f"{base}{counter}"
            counter += 1
        return code

    def next_sort_order(self) -> int:
        return (self._types.max_sort_order() or 0) + PTO_TYPE_SORT_STEP

    def _read(self, payload: Mapping[str, Any], *, current: Optional[PtoType] = None) -> dict[str, Any]:
        errors = FieldErrors()
        ignore_id = current.pto_type_id if current else None

        data: dict[str, Any] = {}
        data["name"] = read_str(payload, "name", errors, required=True, max_length=255)
        data["code"] = read_str(payload, "code", errors, max_length=PTO_TYPE_CODE_MAX_LENGTH)
        data["description"] = read_str(payload, "description", errors, max_length=1000)
        data["color"] = read_str(payload, "color", errors)
        check_hex_color(data["color"], "color", errors)
        data["sort_order"] = read_int(payload, "sort_order", errors, min_value=0)
        data["specific_approvers"] = read_int_list(payload, "specific_approvers", errors)

        for flag, default in _FLAGS_DEFAULTS.items():
            fallback = getattr(current, flag) if current else default
            data[flag] = read_bool(payload, flag, default=fallback)

        if data["name"] and not errors.has("name"):
            existing = self._types.get_by_name(data["name"])
            if existing and existing.pto_type_id != ignore_id:
                errors.add("name", "The name has already been taken.")
        if data["code"] and not errors.has("code"):
            data["code"] = data["code"].upper()
            if self._types.code_exists(data["code"], ignore_id=ignore_id):
                errors.add("code", "The code has already been taken.")
        if data["specific_approvers"]:
            found = {u.user_id for u in self._users.list_by_ids(data["specific_approvers"])}
            if any(uid not in found for uid in data["specific_approvers"]):
                errors.add("specific_approvers", "The selected specific approvers is invalid.")

        errors.raise_if_any()

        if not data["multi_level_approval"]:
            data["disable_hierarchy_approval"] = False
            data["specific_approvers"] = ()
        return data

    def create_type(self, payload: Mapping[str, Any]) -> PtoType:
        data = self._read(payload)
        pto_type = PtoType(
            pto_type_id=0,
            name=data["name"],
            code=data["code"] or self.generate_code(data["name"]),
            description=data["description"],
            color=data["color"] or DEFAULT_PTO_COLOR,
            multi_level_approval=data["multi_level_approval"],
            disable_hierarchy_approval=data["disable_hierarchy_approval"],
            specific_approvers=tuple(data["specific_approvers"]),
            uses_balance=data["uses_balance"],
            carryover_allowed=data["carryover_allowed"],
            negative_allowed=data["negative_allowed"],
            affects_schedule=data["affects_schedule"],
            show_in_department_calendar=data["show_in_department_calendar"],
            is_active=data["is_active"],
            sort_order=self.next_sort_order() if data["sort_order"] is None else data["sort_order"],
        )
        pto_type_id = self._types.create(pto_type)
        logger.info("PTO type created: %s (%s)", pto_type.name, pto_type.code)
        return replace(pto_type, pto_type_id=pto_type_id)

    def update_type(self, pto_type_id: int, payload: Mapping[str, Any]) -> PtoType:
        current = self.get_type(pto_type_id)
        data = self._read(payload, current=current)
        updated = replace(
            current,
            name=data["name"],
            code=data["code"] or current.code,
            description=data["description"],
            color=data["color"] or current.color,
            multi_level_approval=data["multi_level_approval"],
            disable_hierarchy_approval=data["disable_hierarchy_approval"],
            specific_approvers=tuple(data["specific_approvers"]),
            uses_balance=data["uses_balance"],
            carryover_allowed=data["carryover_allowed"],
            negative_allowed=data["negative_allowed"],
            affects_schedule=data["affects_schedule"],
            show_in_department_calendar=data["show_in_department_calendar"],
            is_active=data["is_active"],
            sort_order=current.sort_order if data["sort_order"] is None else data["sort_order"],
        )
        self._types.update(updated)
        logger.info("PTO type updated: %s (%s)", updated.name, updated.code)
        return updated

    def delete_type(self, pto_type_id: int) -> str:
        pto_type = self.get_type(pto_type_id)
        usage = self._types.usage(pto_type.pto_type_id)
        if usage.in_use:
            raise ValidationError(
                "Cannot delete PTO Type that is in use.",
                context={"usage": usage.to_dict()},
            )
        self._types.delete(pto_type.pto_type_id)
        logger.info("PTO type deleted: %s (%s)", pto_type.name, pto_type.code)
        return f"PTO Type '{pto_type.name}' deleted successfully."

    def toggle_active(self, pto_type_id: int) -> PtoType:
        pto_type = self.get_type(pto_type_id)
        updated = replace(pto_type, is_active=not pto_type.is_active)
        self._types.update(updated)
        logger.info("PTO type %s %s", updated.code, "activated" if updated.is_active else "deactivated")
        return updated

    def update_sort_orders(self, payload: Mapping[str, Any]) -> int:
        items = payload.get("types")
        if not isinstance(items, list) or not items:
            raise ValidationError("The types field is required.", errors={"types": ["The types field is required."]})

        orders: list[tuple[int, int]] = []
        for item in items:
            if not isinstance(item, Mapping):
                raise ValidationError("The types field must contain objects.")
            errors = FieldErrors()
            type_id = read_int(item, "id", errors, required=True)
            order = read_int(item, "sort_order", errors, required=True, min_value=0)
            errors.raise_if_any()
            self.get_type(type_id)
            orders.append((type_id, order))

        self._types.set_sort_orders(orders)
        return len(orders)
