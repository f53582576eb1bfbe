"""Monday-first week boundary helpers."""

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

DAYS_PER_WEEK = 7
DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Last representable millisecond of a day.
END_OF_DAY = timedelta(hours=23, minutes=59, seconds=59, milliseconds=999)


def week_bounds(reference: datetime) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` of the week containing ``reference``.

    ``start`` is Monday 00:00:00.000 and ``end`` the following Sunday
    23:59:59.999, both in ``reference``'s timezone. A Sunday reference belongs
    to the week ending on that Sunday.
    """

    # weekday() is already Monday=0 .. Sunday=6, so Sunday walks back six days.
    monday = reference.date() - timedelta(days=reference.weekday())
    sunday = monday + timedelta(days=DAYS_PER_WEEK - 1)
    # Built from calendar fields so DST shifts cannot move the wall-clock time.
    start = datetime(monday.year, monday.month, monday.day, tzinfo=reference.tzinfo)
    end = datetime(sunday.year, sunday.month, sunday.day, tzinfo=reference.tzinfo) + END_OF_DAY
    return start, end


def day_index(moment: datetime) -> int:
    return moment.weekday()


def is_expired(week_end: datetime, now: datetime) -> bool:
    """A week expires strictly after its last millisecond."""
    return align_to(now, week_end) > week_end


def now_local(timezone_name: str | None = None) -> datetime:
    """Return an aware "now" in ``timezone_name`` or the host's local zone."""

    if timezone_name:
        return datetime.now(ZoneInfo(timezone_name))
    return datetime.now().astimezone()


def align_to(moment: datetime, reference: datetime) -> datetime:
    """Make ``moment`` comparable with ``reference``.

    Mixing naive and aware values compares wall-clock times.
    """

    if reference.tzinfo is None and moment.tzinfo is not None:
        return moment.replace(tzinfo=None)
    if reference.tzinfo is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=reference.tzinfo)
    return moment
