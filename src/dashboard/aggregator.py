"""Merges the session log with every source into one time-ordered feed."""

import asyncio
from dataclasses import dataclass, field
from typing import Sequence

from src.dashboard.activity_log import ActivityLog
from src.dashboard.classify import is_system_entry, normalize_activity_text
from src.dashboard.errors import AllSourcesFailed, SourceUnavailable
from src.dashboard.logging import get_logger
from src.dashboard.models import ActivityItem
from src.dashboard.sources import Source

logger = get_logger(__name__)


@dataclass
class AggregationResult:
    """Feed items plus the per-source failures absorbed while building them."""

    items: list[ActivityItem]
    warnings: list[SourceUnavailable] = field(default_factory=list)


def session_items(entries: Sequence[ActivityItem]) -> list[ActivityItem]:
    """User-facing view of log entries: system entries dropped, text normalized."""
    return [
        entry.model_copy(update={"text": normalize_activity_text(entry.text)})
        for entry in entries
        if not is_system_entry(entry.text)
    ]


def merge(*groups: Sequence[ActivityItem]) -> list[ActivityItem]:
    """Concatenate groups, keep the first item per id, newest first.

    The sort is stable, so items with equal timestamps keep their
    concatenation order.
    """
    seen: set[str] = set()
    unique: list[ActivityItem] = []
    for group in groups:
        for item in group:
            if item.id in seen:
                continue
            seen.add(item.id)
            unique.append(item)
    unique.sort(key=lambda item: item.timestamp, reverse=True)
    return unique


class ActivityAggregator:
    """Builds the dashboard activity feed.

    Reads only: neither the log nor the backend is modified.
    """

    def __init__(self, activity_log: ActivityLog, sources: Sequence[Source]) -> None:
        self.activity_log = activity_log
        self.sources = list(sources)

    async def _collect(self) -> tuple[list[list[ActivityItem]], list[SourceUnavailable]]:
        results = await asyncio.gather(
            *(source.activities() for source in self.sources),
            return_exceptions=True,
        )
        collected: list[list[ActivityItem]] = []
        failures: list[SourceUnavailable] = []
        for source, result in zip(self.sources, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failure = SourceUnavailable(source.name, result)
                logger.warning(
                    "source_unavailable",
                    source=source.name,
                    error=str(result),
                    type=type(result).__name__,
                )
                failures.append(failure)
                collected.append([])
            else:
                collected.append(result)
        return collected, failures

    async def aggregate_with_report(self) -> AggregationResult:
        """Build the feed and report which sources were skipped.

        Raises:
            AllSourcesFailed: If there is at least one source and all failed.
        """
        # Snapshot before the first await so the feed reflects the log as of the call
        local = session_items(self.activity_log.entries())

        collected, failures = await self._collect()
        if self.sources and len(failures) == len(self.sources):
            logger.error("all_sources_failed", sources=[f.source for f in failures])
            raise AllSourcesFailed(failures)

        items = merge(local, *collected)
        logger.info(
            "activities_aggregated",
            items=len(items),
            session_items=len(local),
            failed_sources=[f.source for f in failures],
        )
        return AggregationResult(items=items, warnings=failures)

    async def aggregate(self) -> list[ActivityItem]:
        """Build the feed: session log first, then every source, deduplicated by id."""
        result = await self.aggregate_with_report()
        return result.items
