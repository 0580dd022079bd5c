"""User-initiated deadline commands: add, toggle completion, delete.

Unlike the read paths, these propagate failures: the user asked for the
change and has to be told when it did not happen. On success each command
records an activity in the session log and asks the backend to resync its
statistics (best effort).
"""

from datetime import date, datetime

from src.dashboard.activity_log import ActivityLog
from src.dashboard.classify import deadline_label
from src.dashboard.client import DashboardApiClient
from src.dashboard.errors import DashboardError, PermanentError
from src.dashboard.logging import get_logger
from src.dashboard.models import (
    CalendarEventRecord,
    DeadlineCategory,
    DeadlineItem,
    Priority,
)
from src.dashboard.sources.calendar import to_deadline

logger = get_logger(__name__)

# Keys the backend owns; never echoed back on update
_SERVER_FIELDS = ("_id", "id", "createdAt", "updatedAt", "__v")


def _as_deadline(payload: object, fallback: dict) -> DeadlineItem:
    """DeadlineItem from an API response, filling gaps from what was sent."""
    data = {**fallback, **payload} if isinstance(payload, dict) else dict(fallback)
    return to_deadline(CalendarEventRecord.model_validate(data))


class DeadlineCommands:
    """Writes to the calendar store on behalf of the user."""

    def __init__(self, client: DashboardApiClient, activity_log: ActivityLog) -> None:
        self.client = client
        self.activity_log = activity_log

    async def _resync_stats(self) -> None:
        try:
            await self.client.sync_stats()
        except DashboardError as e:
            logger.warning("stats_resync_failed", error=str(e))

    async def add(
        self,
        task: str,
        due: date | datetime,
        category: DeadlineCategory = "other",
        priority: Priority = "medium",
        completed: bool = False,
    ) -> DeadlineItem:
        """Create a deadline as an all-day calendar event.

        Raises:
            ValueError: If the task is blank.
            DashboardError: If the API rejects or cannot store the event.
        """
        task = task.strip()
        if not task:
            raise ValueError("task must not be empty")
        body = {
            "title": task,
            "date": due.isoformat(),
            "type": "deadline",
            "className": deadline_label(category, priority),
            "description": "",
            "completed": completed,
            "isAllDay": True,
        }
        created = await self.client.create_calendar_event(body)
        if not isinstance(created, dict) or not (created.get("_id") or created.get("id")):
            raise PermanentError("POST /calendar: response carried no event id")
        deadline = _as_deadline(created, body)
        logger.info("deadline_added", deadline_id=deadline.id, category=category)

        self.activity_log.log(
            f"Added new {category} task: {task}",
            "deadline",
            f"Due date: {due.isoformat()}, Priority: {priority}",
        )
        await self._resync_stats()
        return deadline

    async def toggle(self, deadline_id: str) -> DeadlineItem:
        """Flip a deadline between completed and open.

        Raises:
            DashboardError: If the event cannot be read or updated.
        """
        event = await self.client.get_calendar_event(deadline_id)
        if not isinstance(event, dict):
            raise PermanentError(f"GET /calendar/{deadline_id}: no event returned")
        was_completed = bool(event.get("completed"))
        body = {k: v for k, v in event.items() if k not in _SERVER_FIELDS}
        body["completed"] = not was_completed

        updated = await self.client.update_calendar_event(deadline_id, body)
        deadline = _as_deadline(updated, {**body, "_id": deadline_id})
        logger.info("deadline_toggled", deadline_id=deadline_id, completed=deadline.completed)

        verb = "Reopened" if was_completed else "Completed"
        self.activity_log.log(f"{verb} task: {event.get('title', deadline_id)}", "deadline")
        await self._resync_stats()
        return deadline

    async def delete(self, deadline_id: str, task: str | None = None) -> None:
        """Delete a deadline. The title for the activity entry is looked up
        when not given.

        Raises:
            DashboardError: If the event cannot be found or deleted.
        """
        if task is None:
            event = await self.client.get_calendar_event(deadline_id)
            task = event.get("title") if isinstance(event, dict) else None
        await self.client.delete_calendar_event(deadline_id)
        logger.info("deadline_deleted", deadline_id=deadline_id)

        if task:
            self.activity_log.log(f"Deleted task: {task}", "deadline")
        await self._resync_stats()
