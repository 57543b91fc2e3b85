from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import PtoPolicy


class PtoPolicyRepository(Protocol):
    def list_policies(
        self,
        *,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
        active_only: bool = False,
    ) -> Sequence[PtoPolicy]:
        raise NotImplementedError

    def get_by_id(self, policy_id: int) -> Optional[PtoPolicy]:
        raise NotImplementedError

    def get_for_user_and_type(self, *, user_id: int, pto_type_id: int) -> Optional[PtoPolicy]:
        raise NotImplementedError

    def create(self, policy: PtoPolicy) -> int:
        raise NotImplementedError

    def update(self, policy: PtoPolicy) -> None:
        raise NotImplementedError

    def delete(self, policy_id: int) -> bool:
        raise NotImplementedError
