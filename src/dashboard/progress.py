"""Deadline completion breakdown and the weekly progress statistic."""

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Literal

from src.dashboard.client import DashboardApiClient
from src.dashboard.errors import DashboardError, SyncWriteFailed
from src.dashboard.logging import get_logger
from src.dashboard.models import DeadlineItem, ProgressBreakdown
from src.dashboard.sources.calendar import CalendarSource

logger = get_logger(__name__)

WEEKLY_PROGRESS_STAT = "weeklyProgress"

Bucket = Literal["completed", "in_progress", "overdue", "upcoming"]


def classify_deadline(deadline: DeadlineItem, now: datetime) -> Bucket:
    """Place a deadline in exactly one bucket.

    Checked in order: completed (any date), overdue (due before now),
    in progress (high priority), upcoming (everything else).
    """
    if deadline.completed:
        return "completed"
    if deadline.due_date < now:
        return "overdue"
    if deadline.priority == "high":
        return "in_progress"
    return "upcoming"


def breakdown(deadlines: Iterable[DeadlineItem], now: datetime) -> ProgressBreakdown:
    counts = Counter(classify_deadline(d, now) for d in deadlines)
    return ProgressBreakdown(
        completed=counts["completed"],
        in_progress=counts["in_progress"],
        overdue=counts["overdue"],
        upcoming=counts["upcoming"],
    )


class ProgressCalculator:
    """Computes the breakdown from the calendar's deadlines and publishes
    the completed percentage as the weeklyProgress statistic."""

    def __init__(self, calendar: CalendarSource, client: DashboardApiClient) -> None:
        self.calendar = calendar
        self.client = client

    async def _write_weekly_progress(self, value: int) -> None:
        try:
            await self.client.update_stat(WEEKLY_PROGRESS_STAT, value)
        except DashboardError as e:
            raise SyncWriteFailed(f"{WEEKLY_PROGRESS_STAT}={value}: {e}") from e

    async def publish_weekly_progress(self, value: int) -> bool:
        """Write the statistic. Failures are logged and reported as False."""
        try:
            await self._write_weekly_progress(value)
        except SyncWriteFailed as e:
            logger.warning("weekly_progress_write_failed", value=value, error=str(e))
            return False
        logger.debug("weekly_progress_published", value=value)
        return True

    async def compute_progress(
        self,
        now: datetime | None = None,
        deadlines: list[DeadlineItem] | None = None,
    ) -> ProgressBreakdown:
        """Breakdown of the current deadline set.

        Args:
            now: Reference instant (defaults to the current UTC time).
            deadlines: Already-fetched deadlines; fetched from the calendar if None.

        Returns:
            The breakdown. An unreachable calendar yields an all-zero breakdown.
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if deadlines is None:
            try:
                deadlines = await self.calendar.fetch_deadlines()
            except DashboardError as e:
                logger.warning("source_unavailable", source=self.calendar.name, error=str(e))
                return ProgressBreakdown()

        result = breakdown(deadlines, now)
        logger.info(
            "progress_computed",
            total=result.total,
            completed=result.completed,
            overdue=result.overdue,
            weekly_progress=result.weekly_progress,
        )
        await self.publish_weekly_progress(result.weekly_progress)
        return result
