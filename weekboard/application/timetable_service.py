# weekboard/application/timetable_service.py
"""
Application service coordinating timetable aggregates and their persistence.

Every mutating call loads one aggregate, changes it in memory through the
domain services and writes it back with a single repository call. Rollover is
evaluated lazily whenever an aggregate is read or written here.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import psycopg
from psycopg import errors as pg_errors

from weekboard.application.exceptions import (
    DataAccessError,
    DuplicateTimetableError,
    RolloverError,
    TimetableConflictError,
    TimetableNotFoundError,
)
from weekboard.domain.configuration import get_settings
from weekboard.domain.entities import ActivityDefinition, Timetable, WeekRecord
from weekboard.domain.errors import InvalidArgument
from weekboard.domain.periods import now_local
from weekboard.domain.repositories import TimetableRepository
from weekboard.domain.rollover import RolloverEngine
from weekboard.domain.stats import HistoryPage, paginate_history, timetable_stats
from weekboard.domain.toggle import ToggleController
from weekboard.infrastructure import log_utils
from weekboard.infrastructure.mappers import TimetableMappingError

Clock = Callable[[], datetime]


def _default_clock() -> datetime:
    return now_local(get_settings().timezone)


@contextmanager
def _data_access(action: str):
    """Translate persistence failures into application exceptions."""
    try:
        yield
    except pg_errors.UniqueViolation as exc:
        raise DuplicateTimetableError("A timetable with this name already exists") from exc
    except psycopg.Error as exc:
        log_utils.error(f"Database error while trying to {action}: {exc}")
        raise DataAccessError(f"Failed to {action}: {exc}") from exc
    except TimetableMappingError as exc:
        log_utils.error(f"Stored timetable could not be read while trying to {action}: {exc}")
        raise DataAccessError(f"Failed to {action}: {exc}") from exc


class TimetableService:
    """Use cases for weekly timetables."""

    def __init__(
        self,
        repository: TimetableRepository,
        *,
        engine: RolloverEngine | None = None,
        controller: ToggleController | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.repository = repository
        self.engine = engine or RolloverEngine()
        self.controller = controller or ToggleController()
        self.clock = clock or _default_clock

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------
    def _load(self, user_id: str, timetable_id: str) -> Timetable:
        with _data_access("load timetable"):
            timetable = self.repository.get_timetable(user_id, timetable_id)
        if timetable is None:
            raise TimetableNotFoundError(f"Timetable not found: {timetable_id}")
        return timetable

    def _save(self, timetable: Timetable, action: str) -> None:
        with _data_access(action):
            self.repository.save_timetable(timetable)

    def _roll_if_due(self, timetable: Timetable, now: datetime) -> bool:
        rolled = self.engine.evaluate_and_roll(timetable, now)
        if rolled:
            log_utils.info(
                f"Rolled timetable {timetable.id} into week starting "
                f"{timetable.current_week.week_start_date.date().isoformat()} "
                f"({len(timetable.history)} archived week(s))."
            )
        return rolled

    def _persist_rollover(self, timetable: Timetable) -> None:
        try:
            self._save(timetable, "persist rollover")
        except DataAccessError as exc:
            raise RolloverError(str(exc)) from exc

    def _load_current(self, user_id: str, timetable_id: str) -> Timetable:
        timetable = self._load(user_id, timetable_id)
        if self._roll_if_due(timetable, self.clock()):
            self._persist_rollover(timetable)
        return timetable

    # ------------------------------------------------------------------
    # Current week
    # ------------------------------------------------------------------
    def get_active_timetable(self, user_id: str) -> Timetable:
        """Return the user's active timetable, promoting the first one if none is active."""

        with _data_access("load active timetable"):
            timetable = self.repository.get_active_timetable(user_id)
            if timetable is None:
                candidates = self.repository.list_timetables(user_id)
                if not candidates:
                    raise TimetableNotFoundError("No timetable exists for this user")
                timetable = candidates[0]
                timetable.is_active = True
                timetable.touch(self.clock())
                self.repository.save_timetable(timetable)
                log_utils.info(f"Promoted timetable {timetable.id} to active for user {user_id}.")
        return timetable

    def get_active_week(self, user_id: str) -> tuple[Timetable, WeekRecord]:
        timetable = self.get_active_timetable(user_id)
        if self._roll_if_due(timetable, self.clock()):
            self._persist_rollover(timetable)
        return timetable, timetable.current_week

    def get_current_week(self, user_id: str, timetable_id: str) -> WeekRecord:
        return self._load_current(user_id, timetable_id).current_week

    def toggle(self, user_id: str, timetable_id: str, activity_id: str, day_index: int) -> WeekRecord:
        """Flip one completion mark and return the recomputed current week.

        Not idempotent: a retried call flips the mark back.
        """

        now = self.clock()
        timetable = self._load(user_id, timetable_id)
        self._roll_if_due(timetable, now)
        week = self.controller.toggle(timetable, activity_id, day_index, now=now)
        self._save(timetable, "save toggle")
        log_utils.info(
            f"Toggled day {day_index} of {activity_id} in timetable {timetable_id}; "
            f"week now {week.overall_completion_rate:.2f}%."
        )
        return week

    def evaluate_rollover(self, user_id: str, timetable_id: str) -> WeekRecord:
        """Roll over if the current week has expired. Safe to retry."""

        return self._load_current(user_id, timetable_id).current_week

    def start_new_week(self, user_id: str, timetable_id: str) -> WeekRecord:
        """Force a rollover regardless of the current week's end date."""

        now = self.clock()
        timetable = self._load(user_id, timetable_id)
        week = self.engine.start_new_week(timetable, now)
        self._persist_rollover(timetable)
        log_utils.info(f"Started a new week for timetable {timetable_id} on request.")
        return week

    # ------------------------------------------------------------------
    # Definitions, history and stats
    # ------------------------------------------------------------------
    def replace_activities(
        self,
        user_id: str,
        timetable_id: str,
        activities: Iterable[ActivityDefinition],
    ) -> Timetable:
        """Replace the definitions used to seed future weeks.

        Existing weeks keep the activities they were seeded with.
        """

        definitions = tuple(activities)
        timetable = self._load(user_id, timetable_id)
        now = self.clock()
        self._roll_if_due(timetable, now)
        timetable.default_activities = definitions
        timetable.touch(now)
        self._save(timetable, "replace activities")
        log_utils.info(f"Replaced {len(definitions)} default activities for timetable {timetable_id}.")
        return timetable

    def get_history(
        self,
        user_id: str,
        timetable_id: str,
        page: int = 1,
        limit: int | None = None,
        order: str | None = None,
    ) -> HistoryPage:
        domain_settings = get_settings()
        timetable = self._load_current(user_id, timetable_id)
        return paginate_history(
            timetable.history,
            page,
            limit if limit is not None else domain_settings.history_page_size,
            order or domain_settings.history_order,
        )

    def get_stats(self, user_id: str, timetable_id: str) -> Dict[str, Any]:
        timetable = self._load_current(user_id, timetable_id)
        return timetable_stats(timetable)

    def list_categories(self, user_id: str) -> List[str]:
        with _data_access("list categories"):
            timetables = self.repository.list_timetables(user_id)
        categories = {
            activity.category
            for timetable in timetables
            for activity in timetable.default_activities
            if activity.category
        }
        return sorted(categories)

    # ------------------------------------------------------------------
    # Timetable CRUD
    # ------------------------------------------------------------------
    def list_timetables(self, user_id: str) -> List[Timetable]:
        with _data_access("list timetables"):
            return self.repository.list_timetables(user_id)

    def get_timetable(self, user_id: str, timetable_id: str) -> Timetable:
        return self._load_current(user_id, timetable_id)

    def create_timetable(
        self,
        user_id: str,
        name: str,
        *,
        description: Optional[str] = None,
        activities: Sequence[ActivityDefinition] = (),
        is_active: bool = True,
    ) -> Timetable:
        timetable = Timetable.create(
            user_id=user_id,
            name=name,
            now=self.clock(),
            default_activities=activities,
            description=description,
            is_active=is_active,
        )
        with _data_access("create timetable"):
            if self.repository.name_exists(user_id, timetable.name):
                raise DuplicateTimetableError("A timetable with this name already exists")
            self.repository.insert_timetable(timetable)
        return timetable

    def update_timetable(
        self,
        user_id: str,
        timetable_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Timetable:
        timetable = self._load(user_id, timetable_id)

        with _data_access("update timetable"):
            if name is not None:
                cleaned = name.strip()
                if not cleaned:
                    raise InvalidArgument("Name is required")
                if cleaned != timetable.name and self.repository.name_exists(
                    user_id, cleaned, exclude_id=timetable_id
                ):
                    raise DuplicateTimetableError("A timetable with this name already exists")
                timetable.name = cleaned
            if description is not None:
                timetable.description = description
            if is_active is not None:
                timetable.is_active = is_active

            now = self.clock()
            self._roll_if_due(timetable, now)
            timetable.touch(now)
            self.repository.save_timetable(timetable)
        return timetable

    def delete_timetable(self, user_id: str, timetable_id: str) -> None:
        with _data_access("delete timetable"):
            timetables = self.repository.list_timetables(user_id)
            target = next((t for t in timetables if t.id == timetable_id), None)
            if target is None:
                raise TimetableNotFoundError(f"Timetable not found: {timetable_id}")
            if len(timetables) <= 1:
                raise TimetableConflictError("Cannot delete the only timetable. Create another one first.")

            successor = None
            if target.is_active:
                successor = next(t for t in timetables if t.id != timetable_id)
            self.repository.delete_timetable(
                user_id, timetable_id, promote_id=successor.id if successor else None
            )
            if successor is not None:
                log_utils.info(f"Timetable {successor.id} is now active for user {user_id}.")
