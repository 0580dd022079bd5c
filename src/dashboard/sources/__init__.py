"""Read-only views over the REST record stores feeding the dashboard."""

from src.dashboard.sources.assignments import AssignmentSource
from src.dashboard.sources.base import Source
from src.dashboard.sources.calendar import CalendarSource
from src.dashboard.sources.lessons import LessonSource
from src.dashboard.sources.resources import ResourceSource

__all__ = [
    "Source",
    "LessonSource",
    "AssignmentSource",
    "ResourceSource",
    "CalendarSource",
]
