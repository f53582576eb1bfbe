"""In-memory repository double for service and API tests."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import psycopg

from weekboard.domain.entities import Timetable
from weekboard.domain.repositories import TimetableRepository
from weekboard.infrastructure.mappers import TimetableMapper


class InMemoryTimetableRepository(TimetableRepository):
    """Stores rows the way the Postgres table does.

    Aggregates go through the mapper on every read and write, so tests never
    share entity instances with the "database".
    """

    def __init__(self) -> None:
        self.mapper = TimetableMapper()
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.saves = 0
        self.fail_promotion = False

    def _row(self, timetable: Timetable) -> Dict[str, Any]:
        return {
            "id": timetable.id,
            "user_id": timetable.user_id,
            "name": timetable.name,
            "description": timetable.description,
            "is_active": timetable.is_active,
            "document": self.mapper.to_document(timetable),
            "created_at": timetable.created_at,
            "updated_at": timetable.updated_at,
        }

    def _deactivate_others(self, timetable: Timetable) -> None:
        if not timetable.is_active:
            return
        for row in self.rows.values():
            if row["user_id"] == timetable.user_id and row["id"] != timetable.id:
                row["is_active"] = False

    def list_timetables(self, user_id: str) -> List[Timetable]:
        return [self.mapper.from_row(row) for row in self.rows.values() if row["user_id"] == user_id]

    def get_timetable(self, user_id: str, timetable_id: str) -> Optional[Timetable]:
        row = self.rows.get(timetable_id)
        if row is None or row["user_id"] != user_id:
            return None
        return self.mapper.from_row(row)

    def get_active_timetable(self, user_id: str) -> Optional[Timetable]:
        for row in self.rows.values():
            if row["user_id"] == user_id and row["is_active"]:
                return self.mapper.from_row(row)
        return None

    def name_exists(self, user_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        return any(
            row["user_id"] == user_id and row["name"] == name and row["id"] != exclude_id
            for row in self.rows.values()
        )

    def insert_timetable(self, timetable: Timetable) -> None:
        self._deactivate_others(timetable)
        self.rows[timetable.id] = self._row(timetable)

    def save_timetable(self, timetable: Timetable) -> None:
        self._deactivate_others(timetable)
        self.rows[timetable.id] = self._row(timetable)
        self.saves += 1

    def delete_timetable(self, user_id: str, timetable_id: str, *, promote_id: Optional[str] = None) -> bool:
        row = self.rows.get(timetable_id)
        if row is None or row["user_id"] != user_id:
            return False
        if promote_id is not None and self.fail_promotion:
            raise psycopg.OperationalError("promotion failed")
        del self.rows[timetable_id]
        if promote_id is not None and promote_id in self.rows:
            self.rows[promote_id]["is_active"] = True
        return True

    def stored(self, timetable_id: str) -> Timetable:
        return self.mapper.from_row(self.rows[timetable_id])
