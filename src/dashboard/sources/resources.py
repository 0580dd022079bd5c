"""Catalog resources in the activity feed."""

from datetime import datetime

from src.dashboard.models import ActivityItem, ResourceRecord
from src.dashboard.sources.base import Source


class ResourceSource(Source):
    name = "resources"
    record_model = ResourceRecord

    async def fetch(self) -> list[dict]:
        return await self.client.get_resources()

    def sort_key(self, record: ResourceRecord) -> datetime:
        return record.created_at or record.date_added or super().sort_key(record)

    def to_activities(self, records: list[ResourceRecord]) -> list[ActivityItem]:
        return [
            ActivityItem(
                id=f"resource_{resource.id}",
                text=f"Added resource: {resource.title}",
                timestamp=self.sort_key(resource),
                category="resource",
            )
            for resource in records
        ]
