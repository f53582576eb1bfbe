"""Weekly timetable tracker: rollover engine, toggle controller and client sync."""

__version__ = "0.1.0"
