"""Mapping utilities for converting between stored documents and timetables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from weekboard.domain.entities import ActivityDefinition, DailyProgress, Timetable, WeekRecord
from weekboard.domain.errors import DomainError
from weekboard.infrastructure import log_utils
from weekboard.utils import converters
from weekboard.utils.math import near

RATE_TOLERANCE = 1e-6


class TimetableMappingError(ValueError):
    """Raised when a stored or received payload cannot be converted."""


@dataclass
class TimetableMapper:
    """Translate between camelCase JSON documents and timetable entities.

    Derived completion rates are written out as a cache for readers that do
    not recompute them. On the way back in they are checked against the marks
    and dropped, since the entities always recompute.
    """

    # ------------------------------------------------------------------
    # Activity definitions
    # ------------------------------------------------------------------
    def activity_to_dict(self, activity: ActivityDefinition) -> Dict[str, Any]:
        return {"name": activity.name, "time": activity.time, "category": activity.category}

    def activity_from_dict(self, payload: Mapping[str, Any]) -> ActivityDefinition:
        if not isinstance(payload, Mapping):
            raise TimetableMappingError("activity must be a mapping")
        try:
            return ActivityDefinition(
                name=str(payload.get("name") or ""),
                time=str(payload.get("time") or ""),
                category=str(payload.get("category") or ""),
            )
        except DomainError as exc:
            raise TimetableMappingError(str(exc)) from exc

    def activities_from_list(self, payload: Iterable[Mapping[str, Any]] | None) -> List[ActivityDefinition]:
        return [self.activity_from_dict(item) for item in payload or []]

    # ------------------------------------------------------------------
    # Weeks
    # ------------------------------------------------------------------
    def progress_to_dict(self, progress: DailyProgress) -> Dict[str, Any]:
        return {
            "_id": progress.id,
            "activity": self.activity_to_dict(progress.activity),
            "dailyStatus": list(progress.daily_status),
            "completionRate": progress.completion_rate,
        }

    def progress_from_dict(self, payload: Mapping[str, Any]) -> DailyProgress:
        if not isinstance(payload, Mapping):
            raise TimetableMappingError("activity progress must be a mapping")
        progress_id = payload.get("_id") or payload.get("id")
        if not progress_id:
            raise TimetableMappingError("activity progress is missing its _id")
        status = payload.get("dailyStatus")
        if not isinstance(status, (list, tuple)):
            raise TimetableMappingError("dailyStatus must be a list")
        try:
            progress = DailyProgress(
                id=str(progress_id),
                activity=self.activity_from_dict(payload.get("activity") or {}),
                daily_status=tuple(status),
            )
        except DomainError as exc:
            raise TimetableMappingError(str(exc)) from exc

        self._check_cached_rate(
            payload.get("completionRate"),
            progress.completion_rate,
            f"activity {progress.id}",
        )
        return progress

    def week_to_dict(self, week: WeekRecord) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "weekStartDate": converters.to_iso(week.week_start_date),
            "weekEndDate": converters.to_iso(week.week_end_date),
            "activities": [self.progress_to_dict(p) for p in week.activities],
            "overallCompletionRate": week.overall_completion_rate,
        }
        if week.notes:
            payload["notes"] = week.notes
        return payload

    def week_from_dict(self, payload: Mapping[str, Any]) -> WeekRecord:
        if not isinstance(payload, Mapping):
            raise TimetableMappingError("week must be a mapping")
        start = converters.to_datetime(payload.get("weekStartDate"))
        end = converters.to_datetime(payload.get("weekEndDate"))
        if start is None or end is None:
            raise TimetableMappingError("week requires weekStartDate and weekEndDate")

        activities = [self.progress_from_dict(item) for item in payload.get("activities") or []]
        try:
            week = WeekRecord(
                week_start_date=start,
                week_end_date=end,
                activities=tuple(activities),
                notes=payload.get("notes") or None,
            )
        except DomainError as exc:
            raise TimetableMappingError(str(exc)) from exc

        self._check_cached_rate(
            payload.get("overallCompletionRate"),
            week.overall_completion_rate,
            f"week starting {converters.to_iso(start)}",
        )
        return week

    # ------------------------------------------------------------------
    # Aggregate
    # ------------------------------------------------------------------
    def to_document(self, timetable: Timetable) -> Dict[str, Any]:
        """The JSONB body stored alongside the scalar columns."""
        return {
            "currentWeek": self.week_to_dict(timetable.current_week),
            "history": [self.week_to_dict(week) for week in timetable.history],
            "defaultActivities": [self.activity_to_dict(a) for a in timetable.default_activities],
        }

    def from_row(self, row: Mapping[str, Any]) -> Timetable:
        """Build a :class:`Timetable` from a ``timetables`` row."""

        if row is None:
            raise TimetableMappingError("row is required")
        document = row.get("document") or {}
        current = document.get("currentWeek")
        if current is None:
            raise TimetableMappingError(f"timetable {row.get('id')} has no currentWeek")

        return Timetable(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            name=row["name"],
            description=row.get("description"),
            is_active=bool(row.get("is_active")),
            current_week=self.week_from_dict(current),
            history=[self.week_from_dict(week) for week in document.get("history") or []],
            default_activities=tuple(self.activities_from_list(document.get("defaultActivities"))),
            created_at=converters.to_datetime(row.get("created_at")),
            updated_at=converters.to_datetime(row.get("updated_at")),
        )

    def summary(self, timetable: Timetable) -> Dict[str, Any]:
        """List view used by ``GET /timetables``."""
        return {
            "id": timetable.id,
            "name": timetable.name,
            "description": timetable.description,
            "isActive": timetable.is_active,
            "createdAt": converters.to_iso(timetable.created_at),
            "updatedAt": converters.to_iso(timetable.updated_at),
            "activitiesCount": len(timetable.default_activities),
            "completionRate": timetable.current_week.overall_completion_rate,
        }

    def to_dict(self, timetable: Timetable) -> Dict[str, Any]:
        """Full wire representation of the aggregate."""
        payload = self.summary(timetable)
        payload.pop("activitiesCount")
        payload.pop("completionRate")
        payload.update(self.to_document(timetable))
        return payload

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _check_cached_rate(cached: Any, actual: float, label: str) -> None:
        if cached is None:
            return
        cached_value = converters.to_float(cached)
        if cached_value is None or not near(cached_value, actual, tolerance=RATE_TOLERANCE):
            log_utils.warn(
                f"Discarding drifted completion rate for {label}: stored {cached!r}, recomputed {actual:.4f}"
            )


__all__ = ["TimetableMapper", "TimetableMappingError", "RATE_TOLERANCE"]
