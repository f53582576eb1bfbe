"""Type conversion helpers used across the Weekboard codebase."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional


def to_float(value: Any) -> Optional[float]:
    """Safely convert ``value`` to ``float`` where possible."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return value
    if isinstance(value, (int, Decimal)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return float(stripped)
        except ValueError:
            return None
    return None


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings (``Z`` suffix included) into ``datetime``."""

    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if stripped.endswith("Z"):
            stripped = stripped[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(stripped)
        except ValueError:
            return None
    return None


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Render a timestamp with millisecond precision."""

    if value is None:
        return None
    return value.isoformat(timespec="milliseconds")
