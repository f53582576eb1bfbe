"""Domain service encapsulating weekly rollover logic."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from weekboard.domain.entities import ActivityDefinition, Timetable, WeekRecord
from weekboard.domain.periods import is_expired


class RolloverEngine:
    """Closes an expired current week and opens the next one.

    The engine only changes the in-memory aggregate. Callers persist the whole
    aggregate in one write so archive and reseed are observed together.
    """

    def seed_week(self, defaults: Iterable[ActivityDefinition], now: datetime) -> WeekRecord:
        """Build a fresh week around ``now`` with every mark cleared."""
        return WeekRecord.seed(defaults, now)

    def is_due(self, timetable: Timetable, now: datetime) -> bool:
        return is_expired(timetable.current_week.week_end_date, now)

    def evaluate_and_roll(self, timetable: Timetable, now: datetime) -> bool:
        """Roll ``timetable`` into a new week when its current one has expired.

        Args:
            timetable: The aggregate to evaluate.
            now: The reference instant.

        Returns:
            ``True`` if a rollover happened. Calling again with the same or a
            later ``now`` inside the new week returns ``False``.
        """
        if not self.is_due(timetable, now):
            return False
        self._roll(timetable, now)
        return True

    def start_new_week(self, timetable: Timetable, now: datetime) -> WeekRecord:
        """Archive and reseed unconditionally."""
        self._roll(timetable, now)
        return timetable.current_week

    def _roll(self, timetable: Timetable, now: datetime) -> None:
        previous = timetable.current_week
        # Empty weeks carry nothing worth keeping.
        if previous.activities:
            timetable.history.append(previous)
        timetable.current_week = self.seed_week(timetable.default_activities, now)
        timetable.touch(now)
