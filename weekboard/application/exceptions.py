"""Custom exception hierarchy for Weekboard application services."""

from __future__ import annotations


class ApplicationError(Exception):
    """Base exception for application service failures."""


class TimetableNotFoundError(ApplicationError):
    """Raised when a timetable does not exist or is not owned by the caller."""


class DuplicateTimetableError(ApplicationError):
    """Raised when a user already has a timetable with the requested name."""


class TimetableConflictError(ApplicationError):
    """Raised when an operation would leave the user without a timetable."""


class RolloverError(ApplicationError):
    """Raised when a week rollover cannot be completed."""


class DataAccessError(ApplicationError):
    """Raised when persistence layer calls fail."""


__all__ = [
    "ApplicationError",
    "TimetableNotFoundError",
    "DuplicateTimetableError",
    "TimetableConflictError",
    "RolloverError",
    "DataAccessError",
]
