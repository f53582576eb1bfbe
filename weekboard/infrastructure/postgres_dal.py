# weekboard/infrastructure/postgres_dal.py
"""
PostgreSQL persistence for timetable aggregates.

Each timetable is one row: scalar columns for lookups and constraints plus a
JSONB ``document`` holding the current week, the history and the activity
defaults. Rewriting that row is the single atomic write every mutation uses.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from weekboard.config import settings
from weekboard.domain.entities import Timetable
from weekboard.domain.repositories import TimetableRepository
from weekboard.infrastructure import log_utils
from weekboard.infrastructure.db_conn import get_database_url
from weekboard.infrastructure.mappers import TimetableMapper

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS timetables (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    name        TEXT NOT NULL,
    description TEXT,
    is_active   BOOLEAN NOT NULL DEFAULT TRUE,
    document    JSONB NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT timetables_user_name_key UNIQUE (user_id, name)
);
CREATE INDEX IF NOT EXISTS timetables_user_active_idx ON timetables (user_id, is_active);
"""

_COLUMNS = "id, user_id, name, description, is_active, document, created_at, updated_at"

# --- Connection Pool Management ---
_pool: ConnectionPool | None = None


def _create_pool() -> ConnectionPool:
    db_url = get_database_url()
    return ConnectionPool(
        conninfo=db_url,
        min_size=settings.DB_POOL_MIN_SIZE,
        max_size=settings.DB_POOL_MAX_SIZE,
    )


def get_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = _create_pool()
    return _pool


class PostgresDal(TimetableRepository):
    """PostgreSQL implementation of :class:`TimetableRepository`."""

    def __init__(self, pool: Optional[ConnectionPool] = None, mapper: Optional[TimetableMapper] = None):
        self.pool = pool or get_pool()
        self.mapper = mapper or TimetableMapper()

    @contextmanager
    def _get_cursor(self):
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                yield cur

    def close(self) -> None:
        if self.pool and not self.pool.closed:
            self.pool.close()
            log_utils.info("Database connection pool closed.")

    def ensure_schema(self) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
            conn.commit()
        log_utils.info("Timetable schema ensured.")

    def ping(self) -> None:
        with self._get_cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()

    # ----------------------------------------------
    # --- Reads ---
    # ----------------------------------------------
    def list_timetables(self, user_id: str) -> List[Timetable]:
        with self._get_cursor() as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM timetables WHERE user_id = %s ORDER BY created_at, id",
                (user_id,),
            )
            rows = cur.fetchall()
        return [self.mapper.from_row(row) for row in rows]

    def get_timetable(self, user_id: str, timetable_id: str) -> Optional[Timetable]:
        with self._get_cursor() as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM timetables WHERE id = %s AND user_id = %s",
                (timetable_id, user_id),
            )
            row = cur.fetchone()
        return self.mapper.from_row(row) if row else None

    def get_active_timetable(self, user_id: str) -> Optional[Timetable]:
        with self._get_cursor() as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM timetables
                WHERE user_id = %s AND is_active
                ORDER BY updated_at DESC
                LIMIT 1
                """,
                (user_id,),
            )
            row = cur.fetchone()
        return self.mapper.from_row(row) if row else None

    def name_exists(self, user_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        with self._get_cursor() as cur:
            cur.execute(
                """
                SELECT EXISTS (
                    SELECT 1 FROM timetables
                    WHERE user_id = %s AND name = %s AND (%s::text IS NULL OR id <> %s)
                ) AS taken
                """,
                (user_id, name, exclude_id, exclude_id),
            )
            row = cur.fetchone()
        return bool(row and row["taken"])

    # ----------------------------------------------
    # --- Writes ---
    # ----------------------------------------------
    def _row_params(self, timetable: Timetable) -> Dict[str, Any]:
        return {
            "id": timetable.id,
            "user_id": timetable.user_id,
            "name": timetable.name,
            "description": timetable.description,
            "is_active": timetable.is_active,
            "document": Jsonb(self.mapper.to_document(timetable)),
            "created_at": timetable.created_at,
            "updated_at": timetable.updated_at,
        }

    def insert_timetable(self, timetable: Timetable) -> None:
        params = self._row_params(timetable)
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                try:
                    if timetable.is_active:
                        cur.execute(
                            "UPDATE timetables SET is_active = false WHERE user_id = %(user_id)s AND is_active",
                            params,
                        )
                    cur.execute(
                        """
                        INSERT INTO timetables (id, user_id, name, description, is_active, document, created_at, updated_at)
                        VALUES (%(id)s, %(user_id)s, %(name)s, %(description)s, %(is_active)s, %(document)s,
                                COALESCE(%(created_at)s, now()), COALESCE(%(updated_at)s, now()))
                        """,
                        params,
                    )
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        log_utils.info(f"Created timetable {timetable.id} ('{timetable.name}') for user {timetable.user_id}.")

    def save_timetable(self, timetable: Timetable) -> None:
        params = self._row_params(timetable)
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                try:
                    if timetable.is_active:
                        cur.execute(
                            """
                            UPDATE timetables SET is_active = false
                            WHERE user_id = %(user_id)s AND id <> %(id)s AND is_active
                            """,
                            params,
                        )
                    cur.execute(
                        """
                        UPDATE timetables
                        SET name = %(name)s,
                            description = %(description)s,
                            is_active = %(is_active)s,
                            document = %(document)s,
                            updated_at = COALESCE(%(updated_at)s, now())
                        WHERE id = %(id)s AND user_id = %(user_id)s
                        """,
                        params,
                    )
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        log_utils.debug(f"Saved timetable {timetable.id}.")

    def delete_timetable(self, user_id: str, timetable_id: str, *, promote_id: Optional[str] = None) -> bool:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                try:
                    cur.execute(
                        "DELETE FROM timetables WHERE id = %s AND user_id = %s",
                        (timetable_id, user_id),
                    )
                    deleted = cur.rowcount > 0
                    if deleted and promote_id is not None:
                        cur.execute(
                            "UPDATE timetables SET is_active = true, updated_at = now() WHERE id = %s AND user_id = %s",
                            (promote_id, user_id),
                        )
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        if deleted:
            log_utils.info(f"Deleted timetable {timetable_id} for user {user_id}.")
        return deleted
