"""Infrastructure mappers bridging persistence, wire and domain layers."""

from .timetable_mapper import TimetableMapper, TimetableMappingError

__all__ = [
    "TimetableMapper",
    "TimetableMappingError",
]
