"""Pydantic models for dashboard data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
View models (ActivityItem, DeadlineItem, ProgressBreakdown) are rebuilt on every
aggregation and never mutated in place. Record models describe the minimum
shape the dashboard needs from the REST API; unknown fields are ignored.
"""

import math
from datetime import date, datetime, timezone
from typing import Annotated, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    computed_field,
)
from pydantic.alias_generators import to_camel

ActivityCategory = Literal[
    "lesson", "resource", "grade", "meeting", "deadline", "assessment", "other"
]
DeadlineCategory = Literal["grading", "planning", "meeting", "other"]
Priority = Literal["high", "medium", "low"]


def to_utc(value: object) -> object:
    """Coerce API timestamps to timezone-aware UTC datetimes.

    Accepts ISO strings (with or without "Z"), date-only strings, date and
    datetime objects, and epoch milliseconds. Naive values are taken as UTC.
    Anything else is passed through for pydantic to reject.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return value
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


Instant = Annotated[datetime, BeforeValidator(to_utc)]
OptionalInstant = Annotated[datetime | None, BeforeValidator(to_utc)]


# ---------------------------------------------------------------------------
# View models
# ---------------------------------------------------------------------------
class ActivityItem(BaseModel):
    """One line of the dashboard activity feed.

    Ids from source adapters are derived from the record kind and its
    external id (e.g. "assignment_created_42") so repeated aggregations
    produce the same ids. Ids from the session log are assigned at log time.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    timestamp: Instant
    category: ActivityCategory = "other"
    details: str | None = None


class DeadlineItem(BaseModel):
    """A calendar event flagged as a deadline."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    id: str
    task: str
    due_date: Instant
    completed: bool = False
    category: DeadlineCategory = "other"
    priority: Priority = "medium"


class ProgressBreakdown(BaseModel):
    """Four-bucket split of the deadline set.

    The buckets are exclusive, so their sum is always the number of
    deadlines the breakdown was computed from.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    completed: int = 0
    in_progress: int = 0
    overdue: int = 0
    upcoming: int = 0

    @computed_field
    @property
    def total(self) -> int:
        return self.completed + self.in_progress + self.overdue + self.upcoming

    @computed_field(alias="weeklyProgress")
    @property
    def weekly_progress(self) -> int:
        """Completed share as a whole percentage, rounded half up."""
        if self.total == 0:
            return 0
        return math.floor(100 * self.completed / self.total + 0.5)


class DashboardStats(BaseModel):
    """Backend-maintained counters shown above the feed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    lessons_created: int = 0
    assignments_graded: int = 0
    assignments_created: int = 0
    upcoming_events: int = 0
    resources_used: int = 0
    weekly_progress: int = 0


class SyncFlags(BaseModel):
    """Flags forwarded verbatim to the backend sync endpoint.

    Their server-side meaning is not visible from here; nothing in this
    package branches on them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    no_mock_data: bool = True
    use_real_data_only: bool = True
    force_real_data: bool = True


class DashboardSnapshot(BaseModel):
    """Everything one force sync publishes to the UI.

    requested_at is the instant the producing force_sync started; consumers
    keep the snapshot with the latest requested_at.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    requested_at: Instant
    activities: list[ActivityItem] = Field(default_factory=list)
    deadlines: list[DeadlineItem] = Field(default_factory=list)
    progress: ProgressBreakdown = Field(default_factory=ProgressBreakdown)
    stats: DashboardStats = Field(default_factory=DashboardStats)
    warnings: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# External records (REST API payloads)
# ---------------------------------------------------------------------------
class Record(BaseModel):
    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, coerce_numbers_to_str=True
    )

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    created_at: OptionalInstant = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    updated_at: OptionalInstant = Field(
        default=None, validation_alias=AliasChoices("updatedAt", "updated_at")
    )


class LessonPlanRecord(Record):
    title: str = Field(min_length=1)


class AssignmentRecord(Record):
    title: str = Field(min_length=1, validation_alias=AliasChoices("title", "name"))
    status: str | None = None
    subject: str | None = None
    total_points: float | None = Field(
        default=None, validation_alias=AliasChoices("totalPoints", "total_points")
    )


class ResourceRecord(Record):
    title: str = Field(min_length=1)
    date_added: OptionalInstant = Field(
        default=None, validation_alias=AliasChoices("dateAdded", "date_added")
    )


class CalendarEventRecord(Record):
    title: str = Field(min_length=1)
    date: OptionalInstant = None
    type: str | None = None
    label: str | None = Field(
        default=None, validation_alias=AliasChoices("className", "label", "tag")
    )
    completed: bool = False
