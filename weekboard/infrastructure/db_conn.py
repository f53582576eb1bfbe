"""Database URL resolution shared by the DAL, the status check and scripts."""

from __future__ import annotations

import os


def get_database_url() -> str:
    """``DATABASE_URL`` from the environment wins over the one built from ``POSTGRES_*`` settings."""

    from weekboard.config import settings

    url = os.getenv("DATABASE_URL") or settings.DATABASE_URL
    if not url:
        raise RuntimeError("No database configured: set DATABASE_URL or the POSTGRES_* variables.")
    return url
