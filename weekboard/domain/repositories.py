from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from weekboard.domain.entities import Timetable


class TimetableRepository(ABC):
    """Abstract interface for timetable persistence.

    Every write stores the whole aggregate in a single statement or
    transaction; concurrent writers follow last-write-wins.
    """

    @abstractmethod
    def list_timetables(self, user_id: str) -> List[Timetable]:
        """Return the user's timetables in creation order."""

    @abstractmethod
    def get_timetable(self, user_id: str, timetable_id: str) -> Optional[Timetable]:
        """Return one timetable owned by ``user_id`` or ``None``."""

    @abstractmethod
    def get_active_timetable(self, user_id: str) -> Optional[Timetable]:
        """Return the user's active timetable or ``None``."""

    @abstractmethod
    def name_exists(self, user_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        """Return ``True`` when another timetable of the user has ``name``."""

    @abstractmethod
    def insert_timetable(self, timetable: Timetable) -> None:
        """Persist a new aggregate, deactivating the user's others if it is active."""

    @abstractmethod
    def save_timetable(self, timetable: Timetable) -> None:
        """Overwrite a stored aggregate, deactivating the user's others if it is active."""

    @abstractmethod
    def delete_timetable(self, user_id: str, timetable_id: str, *, promote_id: Optional[str] = None) -> bool:
        """Delete an aggregate, returning ``False`` when nothing matched.

        When ``promote_id`` is given, that timetable becomes active in the same
        transaction.
        """
