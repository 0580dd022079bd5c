"""Lesson plans in the activity feed."""

from src.dashboard.models import ActivityItem, LessonPlanRecord
from src.dashboard.sources.base import Source


class LessonSource(Source):
    name = "lessons"
    record_model = LessonPlanRecord

    async def fetch(self) -> list[dict]:
        return await self.client.get_lesson_plans()

    def to_activities(self, records: list[LessonPlanRecord]) -> list[ActivityItem]:
        return [
            ActivityItem(
                id=f"lesson_{lesson.id}",
                text=f"Created lesson plan: {lesson.title}",
                timestamp=lesson.created_at or lesson.updated_at,
                category="lesson",
            )
            for lesson in records
        ]
