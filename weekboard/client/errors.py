"""Errors raised by the client synchronization layer."""

from __future__ import annotations

from typing import Optional

import requests


class TimetableApiError(RuntimeError):
    """A request to the timetable API failed or returned an error envelope."""

    def __init__(self, msg: str, resp: Optional[requests.Response] = None):
        super().__init__(msg)
        self.resp = resp
        self.status_code = None if resp is None else resp.status_code
        self.text = None if resp is None else (resp.text or "")


class SyncError(RuntimeError):
    """A synchronized operation failed and the local cache was restored."""


class SyncBusyError(SyncError):
    """Another toggle or refresh for the same timetable is still in flight."""


__all__ = ["TimetableApiError", "SyncError", "SyncBusyError"]
