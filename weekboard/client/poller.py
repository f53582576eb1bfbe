"""Periodic rollover checks for a synchronized timetable."""

from __future__ import annotations

import threading

from weekboard.client.sync import TimetableSync
from weekboard.config import settings
from weekboard.infrastructure import log_utils


class RolloverPoller:
    """Checks for rollover once immediately, then every ``interval`` seconds."""

    def __init__(
        self,
        sync: TimetableSync,
        *,
        interval: float | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.sync = sync
        self.interval = interval if interval is not None else settings.POLL_INTERVAL_SECONDS
        self.stop_event = stop_event or threading.Event()
        self._thread: threading.Thread | None = None

    def poll_once(self) -> bool:
        return self.sync.check_rollover()

    def run(self) -> None:
        """Block until :meth:`stop` is called."""
        log_utils.info(f"Rollover poller started (every {self.interval:.0f}s).")
        self.poll_once()
        while not self.stop_event.wait(self.interval):
            self.poll_once()
        log_utils.info("Rollover poller stopped.")

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="weekboard-rollover-poller", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self.stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
