"""Export modules for calendar and JSON output."""

from .ics import build_calendar, calendar_to_ical, create_calendar_event, save_calendar
from .json_export import build_statistics, events_to_json, save_snapshot, save_statistics

__all__ = [
    "build_calendar",
    "calendar_to_ical",
    "create_calendar_event",
    "save_calendar",
    "build_statistics",
    "events_to_json",
    "save_snapshot",
    "save_statistics",
]
