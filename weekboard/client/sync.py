"""
Client synchronization for a timetable's current week.

The local cache gives immediate feedback while the server stays the source of
truth: toggles are applied optimistically, then either replaced by the
server's answer or rolled back to the snapshot taken before the flip.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Optional

from weekboard.client.api_client import TimetableApiClient
from weekboard.client.cache import SyncState, ToggleCommand, WeekCache
from weekboard.client.errors import SyncBusyError, SyncError, TimetableApiError
from weekboard.domain.configuration import get_settings
from weekboard.domain.entities import WeekRecord
from weekboard.domain.periods import is_expired, now_local
from weekboard.infrastructure import log_utils

Notifier = Callable[[str, str], None]
ChangeListener = Callable[[WeekCache], None]


def log_notifier(message: str, level: str = "INFO") -> None:
    log_utils.log_message(message, level)


class TimetableSync:
    """Keeps one cache entry per timetable in step with the API."""

    def __init__(
        self,
        client: TimetableApiClient,
        *,
        timetable_id: str | None = None,
        notifier: Notifier | None = None,
        on_change: ChangeListener | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.client = client
        self.timetable_id = timetable_id
        self.notifier = notifier or log_notifier
        self.on_change = on_change
        self.clock = clock or (lambda: now_local(get_settings().timezone))
        self._caches: Dict[str, WeekCache] = {}

    # ------------------------------------------------------------------
    # Cache access
    # ------------------------------------------------------------------
    def cache_for(self, timetable_id: str) -> WeekCache:
        cache = self._caches.get(timetable_id)
        if cache is None:
            cache = WeekCache(timetable_id=timetable_id)
            self._caches[timetable_id] = cache
        return cache

    @property
    def cache(self) -> WeekCache:
        if self.timetable_id is None:
            raise SyncError("No timetable selected")
        return self.cache_for(self.timetable_id)

    @property
    def week(self) -> Optional[WeekRecord]:
        return self.cache.week if self.timetable_id else None

    def _changed(self, cache: WeekCache) -> None:
        if self.on_change is not None:
            self.on_change(cache)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def load(self, timetable_id: str | None = None) -> WeekRecord:
        """Fetch the current week, selecting the active timetable when no id is given."""

        if timetable_id is None and self.timetable_id is None:
            try:
                timetable_id, week = self.client.get_active_week()
            except TimetableApiError as exc:
                self.notifier("Failed to fetch current week data", "ERROR")
                raise SyncError(str(exc)) from exc
            self.timetable_id = timetable_id
            cache = self.cache
            with cache.flight():
                cache.week = week
            self._changed(cache)
            return week

        if timetable_id is not None:
            self.timetable_id = timetable_id
        return self.refresh()

    def refresh(self) -> WeekRecord:
        """Replace the cache with the server's current week."""

        cache = self.cache
        with cache.flight():
            try:
                week = self.client.get_current_week(cache.timetable_id)
            except TimetableApiError as exc:
                self.notifier("Failed to fetch current week data", "ERROR")
                raise SyncError(str(exc)) from exc
            cache.week = week
            cache.state = SyncState.IDLE
        self._changed(cache)
        return week

    def toggle(self, activity_id: str, day_index: int) -> WeekRecord:
        """Flip one mark optimistically and reconcile with the server.

        Raises:
            SyncBusyError: another toggle or refresh is still in flight.
            InvalidArgument: the cell does not exist in the cached week; no
                request is sent.
            SyncError: the toggle failed for any reason; the
                cache is back at its pre-toggle state.
        """

        cache = self.cache
        with cache.flight():
            command = ToggleCommand.capture(cache, activity_id, day_index)
            command.apply(cache)
            self._changed(cache)

            try:
                server_week = self.client.toggle(cache.timetable_id, activity_id, day_index)
            except Exception as exc:
                command.revert(cache)
                self._changed(cache)
                log_utils.warn(f"Toggle of {activity_id}/{day_index} failed, restored cached week: {exc}")
                self.notifier("Failed to update activity status", "ERROR")
                raise SyncError(str(exc)) from exc

            command.confirm(cache, server_week)
        self._changed(cache)
        return server_week

    def check_rollover(self, now: datetime | None = None) -> bool:
        """Ask the server to roll over once the cached week has ended.

        Failures are logged and left for the next poll.
        """

        if self.timetable_id is None:
            return False
        cache = self.cache
        if cache.week is None:
            return False
        now = now or self.clock()
        if not is_expired(cache.week.week_end_date, now):
            return False

        try:
            with cache.flight():
                week = self.client.evaluate_rollover(cache.timetable_id)
                cache.week = week
        except SyncBusyError:
            log_utils.debug(f"Rollover check for {cache.timetable_id} skipped; update in flight.")
            return False
        except TimetableApiError as exc:
            log_utils.warn(f"Rollover check for {cache.timetable_id} failed, will retry next poll: {exc}")
            return False
        except Exception as exc:
            log_utils.error(f"Unexpected error checking rollover for {cache.timetable_id}, will retry next poll: {exc!r}")
            return False

        self._changed(cache)
        self.notifier("New week started!", "INFO")
        return True
