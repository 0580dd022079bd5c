"""Calendar events: feed entries for ordinary events, DeadlineItems for deadlines.

An event is a deadline when its type is "deadline" or its label mentions
"deadline" anywhere. Deadlines never show up as generic feed entries; the
progress calculator reads them through deadlines() instead.
"""

from datetime import datetime

from src.dashboard.classify import (
    deadline_category,
    deadline_priority,
    event_category,
    is_deadline_event,
)
from src.dashboard.errors import MalformedRecord
from src.dashboard.logging import get_logger
from src.dashboard.models import ActivityItem, CalendarEventRecord, DeadlineItem
from src.dashboard.sources.base import Source

logger = get_logger(__name__)


def is_deadline(event: CalendarEventRecord) -> bool:
    return is_deadline_event(event.type, event.label)


def to_deadline(event: CalendarEventRecord) -> DeadlineItem:
    """Map a deadline event, deriving category and priority from its label."""
    if event.date is None:
        raise MalformedRecord("calendar", event.id, "deadline without a date")
    return DeadlineItem(
        id=event.id,
        task=event.title,
        due_date=event.date,
        completed=event.completed,
        category=deadline_category(event.label),
        priority=deadline_priority(event.label),
    )


class CalendarSource(Source):
    name = "calendar"
    record_model = CalendarEventRecord

    async def fetch(self) -> list[dict]:
        return await self.client.get_calendar_events()

    def sort_key(self, record: CalendarEventRecord) -> datetime:
        return record.created_at or record.date or super().sort_key(record)

    def most_recent(self, records: list[CalendarEventRecord]) -> list[CalendarEventRecord]:
        return super().most_recent([e for e in records if not is_deadline(e)])

    def to_activities(self, records: list[CalendarEventRecord]) -> list[ActivityItem]:
        return [
            ActivityItem(
                id=f"event_{event.id}",
                text=f"Added {event.type or 'event'}: {event.title}",
                timestamp=self.sort_key(event),
                category=event_category(event.type),
            )
            for event in records
        ]

    def deadlines(self, records: list[CalendarEventRecord]) -> list[DeadlineItem]:
        """Every deadline among the records, in record order."""
        items = []
        for event in records:
            if not is_deadline(event):
                continue
            try:
                items.append(to_deadline(event))
            except MalformedRecord as e:
                logger.warning(
                    "malformed_record_skipped",
                    source=self.name,
                    record_id=e.record_id,
                    reason=e.reason,
                )
        return items

    async def fetch_deadlines(self) -> list[DeadlineItem]:
        """Fetch the calendar and return all of its deadlines.

        Raises:
            DashboardError: If the calendar cannot be fetched.
        """
        payload = await self.fetch()
        items = self.deadlines(self.parse(payload))
        logger.debug("deadlines_fetched", events=len(payload), deadlines=len(items))
        return items
