"""Common plumbing for the read-only views over external record stores."""

from datetime import datetime, timezone
from typing import ClassVar

from pydantic import ValidationError

from src.dashboard.client import DashboardApiClient
from src.dashboard.errors import MalformedRecord
from src.dashboard.logging import get_logger
from src.dashboard.models import ActivityItem, Record

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class Source:
    """Fetches one kind of record and maps it onto feed ActivityItems.

    Subclasses set ``name`` and ``record_model`` and implement fetch() and
    to_activities(). fetch() does the I/O and may raise anything; everything
    after it is pure.
    """

    name: ClassVar[str] = "source"
    record_model: ClassVar[type[Record]] = Record

    def __init__(self, client: DashboardApiClient, limit: int) -> None:
        self.client = client
        self.limit = limit

    async def fetch(self) -> list[dict]:
        raise NotImplementedError

    def to_activities(self, records: list) -> list[ActivityItem]:
        raise NotImplementedError

    def sort_key(self, record) -> datetime:
        return record.created_at or record.updated_at or _EPOCH

    def validate(self, raw: object):
        """Validate one raw payload, raising MalformedRecord on failure."""
        if not isinstance(raw, dict):
            raise MalformedRecord(self.name, None, "record is not an object")
        record_id = raw.get("_id", raw.get("id"))
        try:
            record = self.record_model.model_validate(raw)
        except ValidationError as e:
            fields = ",".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            raise MalformedRecord(self.name, record_id, f"invalid fields: {fields}") from e
        if self.sort_key(record) is _EPOCH:
            raise MalformedRecord(self.name, record.id, "no timestamp")
        return record

    def parse(self, payload: list) -> list:
        """Validate a batch, skipping (and logging) malformed records."""
        records = []
        for raw in payload:
            try:
                records.append(self.validate(raw))
            except MalformedRecord as e:
                logger.warning(
                    "malformed_record_skipped",
                    source=self.name,
                    record_id=e.record_id,
                    reason=e.reason,
                )
        return records

    def most_recent(self, records: list) -> list:
        """The ``limit`` newest records, newest first."""
        ordered = sorted(records, key=self.sort_key, reverse=True)
        return ordered[: self.limit]

    async def activities(self) -> list[ActivityItem]:
        """Fetch, validate and map this source's contribution to the feed."""
        payload = await self.fetch()
        items = self.to_activities(self.most_recent(self.parse(payload)))
        logger.debug("source_fetched", source=self.name, records=len(payload), items=len(items))
        return items
