"""Single-cell completion toggles for the current week."""
from __future__ import annotations

from datetime import datetime

from weekboard.domain.entities import Timetable, WeekRecord
from weekboard.domain.errors import InvalidArgument
from weekboard.domain.periods import DAYS_PER_WEEK


def validate_day_index(day_index: object) -> int:
    if isinstance(day_index, bool) or not isinstance(day_index, int):
        raise InvalidArgument(f"Day index must be an integer, got {day_index!r}")
    if not 0 <= day_index < DAYS_PER_WEEK:
        raise InvalidArgument(f"Day index must be between 0 and {DAYS_PER_WEEK - 1}")
    return day_index


def toggle_cell(week: WeekRecord, activity_id: str, day_index: int) -> WeekRecord:
    """Return ``week`` with one (activity, day) mark flipped.

    Raises:
        InvalidArgument: ``day_index`` is outside 0..6 or ``activity_id``
            matches no entry. Nothing is changed in that case.
    """
    validate_day_index(day_index)
    progress = week.find(activity_id)
    if progress is None:
        raise InvalidArgument(f"Activity not found: {activity_id}")
    return week.replace_entry(progress.toggled(day_index))


class ToggleController:
    """Applies toggles to a timetable's current week."""

    def toggle(
        self,
        timetable: Timetable,
        activity_id: str,
        day_index: int,
        *,
        now: datetime | None = None,
    ) -> WeekRecord:
        updated = toggle_cell(timetable.current_week, activity_id, day_index)
        timetable.current_week = updated
        if now is not None:
            timetable.touch(now)
        return updated
