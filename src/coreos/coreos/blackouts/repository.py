from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import PtoBlackout


class BlackoutRepository(Protocol):
    def list_blackouts(self, *, active_only: bool = False) -> Sequence[PtoBlackout]:
        raise NotImplementedError

    def list_active_overlapping(self, start: date, end: date) -> Sequence[PtoBlackout]:
        """Active non-recurring blackouts whose date range meets [start, end]."""
        raise NotImplementedError

    def list_active_recurring(self) -> Sequence[PtoBlackout]:
        raise NotImplementedError

    def get_by_id(self, blackout_id: int) -> Optional[PtoBlackout]:
        raise NotImplementedError

    def create(self, blackout: PtoBlackout) -> int:
        raise NotImplementedError

    def update(self, blackout: PtoBlackout) -> None:
        raise NotImplementedError

    def delete(self, blackout_id: int) -> bool:
        raise NotImplementedError
