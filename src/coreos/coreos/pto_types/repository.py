from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import PtoType, PtoTypeUsage


class PtoTypeRepository(Protocol):
    def list_types(self, *, active_only: bool = False, search: Optional[str] = None) -> Sequence[PtoType]:
        raise NotImplementedError

    def get_by_id(self, pto_type_id: int) -> Optional[PtoType]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[PtoType]:
        raise NotImplementedError

    def code_exists(self, code: str, *, ignore_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def max_sort_order(self) -> Optional[int]:
        raise NotImplementedError

    def create(self, pto_type: PtoType) -> int:
        raise NotImplementedError

    def update(self, pto_type: PtoType) -> None:
        raise NotImplementedError

    def delete(self, pto_type_id: int) -> bool:
        raise NotImplementedError

    def usage(self, pto_type_id: int) -> PtoTypeUsage:
        raise NotImplementedError

    def set_sort_orders(self, orders: Sequence[tuple[int, int]]) -> None:
        raise NotImplementedError
