"""Numeric helpers shared across Weekboard modules."""

from __future__ import annotations

from typing import Iterable, Optional


def percentage(part: float, whole: float) -> float:
    """Return ``part`` as a percentage of ``whole``; ``0.0`` when ``whole`` is zero."""

    if not whole:
        return 0.0
    return (part / whole) * 100


def mean_or_none(values: Iterable[float]) -> Optional[float]:
    """Return the arithmetic mean of ``values`` or ``None`` when empty."""

    values_list = list(values)
    if not values_list:
        return None
    return sum(values_list) / len(values_list)


def near(value: float | None, target: float | None, *, tolerance: float = 1e-6) -> bool:
    """Return ``True`` when ``value`` is within ``tolerance`` of ``target``."""

    if value is None or target is None:
        return False
    return abs(value - target) <= tolerance
