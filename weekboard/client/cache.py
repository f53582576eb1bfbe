"""Per-timetable cache entries and the optimistic toggle command."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from weekboard.client.errors import SyncBusyError, SyncError
from weekboard.domain.entities import WeekRecord
from weekboard.domain.toggle import toggle_cell


class SyncState(str, Enum):
    IDLE = "idle"
    OPTIMISTIC_PENDING = "optimistic_pending"


@dataclass
class WeekCache:
    """Advisory local copy of one timetable's current week.

    The entry doubles as the single-flight token: only one toggle or refresh
    may be in flight for it at a time.
    """

    timetable_id: str
    week: Optional[WeekRecord] = None
    state: SyncState = SyncState.IDLE
    in_flight: bool = False
    _guard: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def try_acquire(self) -> bool:
        with self._guard:
            if self.in_flight:
                return False
            self.in_flight = True
            return True

    def release(self) -> None:
        with self._guard:
            self.in_flight = False

    @contextmanager
    def flight(self) -> Iterator["WeekCache"]:
        if not self.try_acquire():
            raise SyncBusyError(f"An update for timetable {self.timetable_id} is already in flight")
        try:
            yield self
        finally:
            self.release()


@dataclass
class ToggleCommand:
    """One user toggle moving a cache through Idle -> OptimisticPending -> Idle.

    ``previous`` is the confirmed week captured before the optimistic flip;
    ``revert`` puts it back untouched.
    """

    timetable_id: str
    activity_id: str
    day_index: int
    previous: WeekRecord
    optimistic: Optional[WeekRecord] = None

    @classmethod
    def capture(cls, cache: WeekCache, activity_id: str, day_index: int) -> "ToggleCommand":
        if cache.week is None:
            raise SyncError(f"No week loaded for timetable {cache.timetable_id}")
        return cls(
            timetable_id=cache.timetable_id,
            activity_id=activity_id,
            day_index=day_index,
            previous=cache.week,
        )

    def apply(self, cache: WeekCache) -> WeekRecord:
        """Flip the cell locally. Invalid arguments leave the cache untouched."""
        if cache.state is not SyncState.IDLE:
            raise SyncBusyError("A toggle is already pending confirmation")
        self.optimistic = toggle_cell(self.previous, self.activity_id, self.day_index)
        cache.week = self.optimistic
        cache.state = SyncState.OPTIMISTIC_PENDING
        return self.optimistic

    def confirm(self, cache: WeekCache, server_week: WeekRecord) -> WeekRecord:
        """Adopt the server's week wholesale, including its recomputed rates."""
        cache.week = server_week
        cache.state = SyncState.IDLE
        return server_week

    def revert(self, cache: WeekCache) -> WeekRecord:
        cache.week = self.previous
        cache.state = SyncState.IDLE
        return self.previous
