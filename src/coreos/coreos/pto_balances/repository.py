from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import PtoBalance, PtoTransaction


class PtoBalanceRepository(Protocol):
    def get_by_id(self, balance_id: int) -> Optional[PtoBalance]:
        raise NotImplementedError

    def get_for(self, *, user_id: int, pto_type_id: int, year: int) -> Optional[PtoBalance]:
        raise NotImplementedError

    def list_balances(
        self,
        *,
        year: Optional[int] = None,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
    ) -> Sequence[PtoBalance]:
        raise NotImplementedError

    def create(self, balance: PtoBalance) -> int:
        raise NotImplementedError

    def save(self, balance: PtoBalance) -> None:
        raise NotImplementedError

    def delete(self, balance_id: int) -> bool:
        raise NotImplementedError

    def delete_for(self, *, user_id: int, pto_type_id: int) -> int:
        raise NotImplementedError


class PtoTransactionRepository(Protocol):
    def count_for_year(self, year: int) -> int:
        raise NotImplementedError

    def create(self, txn: PtoTransaction) -> int:
        raise NotImplementedError

    def list_transactions(
        self,
        *,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[PtoTransaction]:
        raise NotImplementedError
