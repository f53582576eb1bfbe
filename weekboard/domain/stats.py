"""Summaries derived from a timetable's current week and history."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from weekboard.domain.entities import Timetable, WeekRecord
from weekboard.domain.errors import InvalidArgument
from weekboard.domain.periods import DAYS_PER_WEEK
from weekboard.utils.converters import to_iso
from weekboard.utils.math import mean_or_none, percentage

HISTORY_ORDERS = ("oldest", "newest")


@dataclass(frozen=True)
class HistoryPage:
    items: List[WeekRecord]
    current_page: int
    total_pages: int
    total_weeks: int


def current_week_stats(week: WeekRecord) -> Dict[str, Any]:
    """Overall rate plus completed/total marks per activity category."""

    by_category: Dict[str, Dict[str, Any]] = {}
    for progress in week.activities:
        bucket = by_category.setdefault(progress.activity.category, {"total": 0, "completed": 0})
        bucket["total"] += DAYS_PER_WEEK
        bucket["completed"] += progress.completed_days

    for bucket in by_category.values():
        bucket["completionRate"] = percentage(bucket["completed"], bucket["total"])

    return {
        "completionRate": week.overall_completion_rate,
        "byCategory": by_category,
    }


def _week_summary(week: WeekRecord | None) -> Dict[str, Any] | None:
    if week is None:
        return None
    return {
        "weekStartDate": to_iso(week.week_start_date),
        "completionRate": week.overall_completion_rate,
    }


def overall_stats(timetable: Timetable) -> Dict[str, Any]:
    """Average, best and worst week across history and the current week."""

    weeks = [*timetable.history, timetable.current_week]
    rates = [week.overall_completion_rate for week in weeks]

    best = max(weeks, key=lambda w: w.overall_completion_rate, default=None)
    worst = min(weeks, key=lambda w: w.overall_completion_rate, default=None)

    return {
        "totalWeeks": len(weeks),
        "averageCompletionRate": mean_or_none(rates) or 0.0,
        "bestWeek": _week_summary(best),
        "worstWeek": _week_summary(worst),
    }


def timetable_stats(timetable: Timetable) -> Dict[str, Any]:
    return {
        "currentWeek": current_week_stats(timetable.current_week),
        "overall": overall_stats(timetable),
    }


def paginate_history(
    history: Sequence[WeekRecord],
    page: int,
    limit: int,
    order: str = "oldest",
) -> HistoryPage:
    """Return one page of archived weeks.

    ``page`` is 1-based. ``order`` is ``"oldest"`` (archive order) or
    ``"newest"``. A page past the end is empty rather than an error.
    """

    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise InvalidArgument("page must be a positive integer")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidArgument("limit must be a positive integer")
    if order not in HISTORY_ORDERS:
        raise InvalidArgument(f"order must be one of {', '.join(HISTORY_ORDERS)}")

    ordered = list(history) if order == "oldest" else list(reversed(history))
    total = len(ordered)
    start = min((page - 1) * limit, total)
    end = min(start + limit, total)

    return HistoryPage(
        items=ordered[start:end],
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_weeks=total,
    )
