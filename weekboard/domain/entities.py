"""Domain entities for weekly timetables and their completion marks."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Sequence

from weekboard.domain.errors import InvalidArgument, InvariantViolation
from weekboard.domain.periods import DAYS_PER_WEEK, week_bounds
from weekboard.utils.math import percentage


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ActivityDefinition:
    """A recurring activity that seeds every new week.

    ``time`` is display text only; nothing schedules against it.
    """

    name: str
    time: str = ""
    category: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidArgument("Activity name is required")


@dataclass(frozen=True)
class DailyProgress:
    """One activity's completion marks for one week.

    The activity is embedded by value so later edits to the definitions never
    rewrite an existing week.
    """

    id: str
    activity: ActivityDefinition
    daily_status: tuple[bool, ...] = (False,) * DAYS_PER_WEEK

    def __post_init__(self) -> None:
        status = tuple(self.daily_status)
        if len(status) != DAYS_PER_WEEK:
            raise InvariantViolation(
                f"daily_status must hold exactly {DAYS_PER_WEEK} marks, got {len(status)}"
            )
        if not all(isinstance(mark, bool) for mark in status):
            raise InvariantViolation("daily_status marks must be booleans")
        object.__setattr__(self, "daily_status", status)

    @classmethod
    def seed(cls, activity: ActivityDefinition) -> "DailyProgress":
        return cls(id=new_id(), activity=activity)

    @property
    def completed_days(self) -> int:
        return sum(1 for mark in self.daily_status if mark)

    @property
    def completion_rate(self) -> float:
        return percentage(self.completed_days, DAYS_PER_WEEK)

    def toggled(self, day_index: int) -> "DailyProgress":
        """Return a copy with exactly the mark at ``day_index`` flipped."""

        status = list(self.daily_status)
        status[day_index] = not status[day_index]
        return DailyProgress(id=self.id, activity=self.activity, daily_status=tuple(status))


@dataclass(frozen=True)
class WeekRecord:
    """A Monday-to-Sunday period with per-activity completion marks."""

    week_start_date: datetime
    week_end_date: datetime
    activities: tuple[DailyProgress, ...] = ()
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.week_start_date >= self.week_end_date:
            raise InvariantViolation("week_start_date must precede week_end_date")
        object.__setattr__(self, "activities", tuple(self.activities))

    @classmethod
    def seed(cls, defaults: Iterable[ActivityDefinition], reference: datetime) -> "WeekRecord":
        """Open the week containing ``reference`` with all marks cleared."""

        start, end = week_bounds(reference)
        return cls(
            week_start_date=start,
            week_end_date=end,
            activities=tuple(DailyProgress.seed(activity) for activity in defaults),
        )

    @property
    def total_marks(self) -> int:
        return sum(progress.completed_days for progress in self.activities)

    @property
    def overall_completion_rate(self) -> float:
        return percentage(self.total_marks, len(self.activities) * DAYS_PER_WEEK)

    def find(self, activity_id: str) -> Optional[DailyProgress]:
        """Resolve an entry by id, falling back to a unique activity name."""

        for progress in self.activities:
            if progress.id == activity_id:
                return progress
        by_name = [p for p in self.activities if p.activity.name == activity_id]
        if len(by_name) == 1:
            return by_name[0]
        return None

    def replace_entry(self, updated: DailyProgress) -> "WeekRecord":
        activities = tuple(updated if p.id == updated.id else p for p in self.activities)
        return WeekRecord(
            week_start_date=self.week_start_date,
            week_end_date=self.week_end_date,
            activities=activities,
            notes=self.notes,
        )


@dataclass
class Timetable:
    """Aggregate owning the current week, its history and the activity defaults.

    ``history`` is append-only and only the rollover engine appends to it.
    """

    id: str
    user_id: str
    name: str
    current_week: WeekRecord
    description: Optional[str] = None
    is_active: bool = True
    history: list[WeekRecord] = field(default_factory=list)
    default_activities: tuple[ActivityDefinition, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        user_id: str,
        name: str,
        now: datetime,
        default_activities: Sequence[ActivityDefinition] = (),
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> "Timetable":
        cleaned = (name or "").strip()
        if not cleaned:
            raise InvalidArgument("Name is required")
        defaults = tuple(default_activities)
        return cls(
            id=new_id(),
            user_id=user_id,
            name=cleaned,
            description=description,
            is_active=is_active,
            current_week=WeekRecord.seed(defaults, now),
            default_activities=defaults,
            created_at=now,
            updated_at=now,
        )

    def touch(self, now: datetime) -> None:
        self.updated_at = now


__all__ = [
    "ActivityDefinition",
    "DailyProgress",
    "WeekRecord",
    "Timetable",
    "new_id",
]
