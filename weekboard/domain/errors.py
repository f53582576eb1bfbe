"""Exceptions raised by timetable domain logic."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for timetable domain failures."""


class InvalidArgument(DomainError, ValueError):
    """Raised when a caller-supplied argument violates an operation precondition."""


class InvariantViolation(DomainError, ValueError):
    """Raised when a record would be constructed in a state that must never exist."""


__all__ = ["DomainError", "InvalidArgument", "InvariantViolation"]
