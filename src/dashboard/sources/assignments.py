"""Assignments in the activity feed.

Every assignment contributes a "created" entry; graded ones also contribute
a "graded" entry stamped with the time of the last update.
"""

from src.dashboard.models import ActivityItem, AssignmentRecord
from src.dashboard.sources.base import Source

GRADED_STATUS = "graded"
DEFAULT_SUBJECT = "General"
DEFAULT_TOTAL_POINTS = 100


def _details(assignment: AssignmentRecord) -> str:
    points = assignment.total_points
    if points is None:
        points = DEFAULT_TOTAL_POINTS
    if float(points).is_integer():
        points = int(points)
    return f"Subject: {assignment.subject or DEFAULT_SUBJECT}, Total Points: {points}"


class AssignmentSource(Source):
    name = "assignments"
    record_model = AssignmentRecord

    async def fetch(self) -> list[dict]:
        return await self.client.get_assignments()

    def to_activities(self, records: list[AssignmentRecord]) -> list[ActivityItem]:
        items: list[ActivityItem] = []
        for assignment in records:
            details = _details(assignment)
            items.append(
                ActivityItem(
                    id=f"assignment_created_{assignment.id}",
                    text=f"Created assignment: {assignment.title}",
                    timestamp=assignment.created_at or assignment.updated_at,
                    category="grade",
                    details=details,
                )
            )
            if (assignment.status or "").lower() == GRADED_STATUS:
                items.append(
                    ActivityItem(
                        id=f"assignment_graded_{assignment.id}",
                        text=f"Graded assignment: {assignment.title}",
                        timestamp=assignment.updated_at or assignment.created_at,
                        category="grade",
                        details=details,
                    )
                )
        return items
