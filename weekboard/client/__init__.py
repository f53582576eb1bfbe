"""Client-side synchronization with the timetable API."""

from .api_client import TimetableApiClient
from .cache import SyncState, ToggleCommand, WeekCache
from .errors import SyncBusyError, SyncError, TimetableApiError
from .poller import RolloverPoller
from .sync import TimetableSync

__all__ = [
    "TimetableApiClient",
    "TimetableSync",
    "RolloverPoller",
    "WeekCache",
    "ToggleCommand",
    "SyncState",
    "SyncError",
    "SyncBusyError",
    "TimetableApiError",
]
