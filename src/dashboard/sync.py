"""Force sync: make the backend recompute, then re-read everything.

A force sync runs on dashboard load and on every explicit refresh:

1. Ask the backend to recompute its statistics, twice, over two different
   paths (a direct one-shot request, then the standard client).
2. Re-run the aggregator, the progress calculator and the stats read.
3. Publish the resulting DashboardSnapshot.
4. After a short delay, fetch deadlines once more. A deadline created just
   before the sync is sometimes missing from the first read; if the delayed
   read finds deadlines where the first found none, publish again.

Every step is best effort. Only AllSourcesFailed from the aggregator
propagates. Each force sync bumps a generation counter and only the newest
generation may publish, so a slow delayed re-fetch can never overwrite a
newer snapshot.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

from src.dashboard.aggregator import ActivityAggregator
from src.dashboard.client import DashboardApiClient
from src.dashboard.errors import DashboardError, SyncWriteFailed
from src.dashboard.logging import get_logger
from src.dashboard.models import (
    DashboardSnapshot,
    DashboardStats,
    DeadlineItem,
    ProgressBreakdown,
    SyncFlags,
)
from src.dashboard.progress import ProgressCalculator
from src.dashboard.sources.calendar import CalendarSource

logger = get_logger(__name__)

DEFAULT_REFETCH_DELAY = 2.0

Publisher = Callable[[DashboardSnapshot], Awaitable[None] | None]
SyncCall = Callable[[], Awaitable[object]]


@dataclass
class SyncOutcome:
    """Which sync paths were tried and which of them got through."""

    attempted: list[str] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    errors: dict[str, SyncWriteFailed] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return bool(self.succeeded)


class RedundantSync:
    """Send the same sync request over several paths, in order.

    Every path is tried even when an earlier one succeeded: the second call
    is a confirmation against a single transport silently failing, not a
    retry. Failures are recorded on the outcome and never raised.
    """

    def __init__(self, calls: Sequence[tuple[str, SyncCall]]) -> None:
        self.calls = list(calls)

    async def run(self) -> SyncOutcome:
        outcome = SyncOutcome()
        for name, call in self.calls:
            outcome.attempted.append(name)
            try:
                await call()
            except DashboardError as e:
                failure = SyncWriteFailed(f"{name} sync failed: {e}")
                failure.__cause__ = e
                outcome.errors[name] = failure
                logger.warning("sync_path_failed", path=name, error=str(e))
                continue
            outcome.succeeded.append(name)
            logger.debug("sync_path_succeeded", path=name)
        return outcome


class SyncOrchestrator:
    """Runs force syncs and publishes DashboardSnapshots to a callback.

    Args:
        client: API client used for the sync and stats calls.
        aggregator: Builds the activity feed.
        calculator: Computes the deadline breakdown.
        calendar: Source of deadlines for the snapshot and the delayed re-fetch.
        publish: Called with every snapshot that is still current.
        refetch_delay: Seconds before the delayed deadline re-fetch; None disables it.
        flags: Flags forwarded to the sync endpoint.
    """

    def __init__(
        self,
        client: DashboardApiClient,
        aggregator: ActivityAggregator,
        calculator: ProgressCalculator,
        calendar: CalendarSource,
        publish: Publisher | None = None,
        refetch_delay: float | None = DEFAULT_REFETCH_DELAY,
        flags: SyncFlags | None = None,
    ) -> None:
        self.client = client
        self.aggregator = aggregator
        self.calculator = calculator
        self.calendar = calendar
        self.publish = publish
        self.refetch_delay = refetch_delay
        self.flags = flags or SyncFlags()
        self.latest: DashboardSnapshot | None = None
        self.pending_refetch: asyncio.Task | None = None
        self._generation = 0
        self.sync_policy = RedundantSync(
            [
                ("direct", lambda: self.client.direct_sync(self.flags)),
                ("standard", lambda: self.client.sync_stats(self.flags)),
            ]
        )

    @property
    def generation(self) -> int:
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _publish(self, snapshot: DashboardSnapshot, generation: int) -> bool:
        if not self._is_current(generation):
            logger.info(
                "snapshot_discarded",
                generation=generation,
                current=self._generation,
                requested_at=snapshot.requested_at.isoformat(),
            )
            return False
        self.latest = snapshot
        if self.publish is not None:
            try:
                result = self.publish(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error("snapshot_publish_failed", error=str(e), type=type(e).__name__)
        return True

    async def _fetch_deadlines(self) -> list[DeadlineItem] | None:
        try:
            return await self.calendar.fetch_deadlines()
        except DashboardError as e:
            logger.warning("source_unavailable", source=self.calendar.name, error=str(e))
            return None

    async def _deadlines_and_progress(
        self,
    ) -> tuple[list[DeadlineItem], ProgressBreakdown, list[str]]:
        deadlines = await self._fetch_deadlines()
        if deadlines is None:
            return [], ProgressBreakdown(), [f"{self.calendar.name} deadlines unavailable"]
        progress = await self.calculator.compute_progress(deadlines=deadlines)
        return deadlines, progress, []

    async def _stats(self) -> tuple[DashboardStats, list[str]]:
        try:
            return await self.client.get_stats(), []
        except DashboardError as e:
            logger.warning("stats_unavailable", error=str(e))
            return DashboardStats(), [f"stats unavailable: {e}"]

    async def force_sync(self) -> DashboardSnapshot:
        """Run one force sync and return its snapshot.

        The snapshot is returned even if a newer force sync started in the
        meantime; in that case it is not published.

        Raises:
            AllSourcesFailed: If no activity source could be read.
        """
        self._generation += 1
        generation = self._generation
        requested_at = datetime.now(timezone.utc)
        self._cancel_pending()
        logger.info("force_sync_started", generation=generation)

        outcome = await self.sync_policy.run()
        if not outcome.ok:
            logger.warning(
                "force_sync_backend_unsynced",
                errors={name: str(e) for name, e in outcome.errors.items()},
            )

        # Every branch settles before an aggregation failure is raised
        results = await asyncio.gather(
            self.aggregator.aggregate_with_report(),
            self._deadlines_and_progress(),
            self._stats(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        feed, (deadlines, progress, deadline_warnings), (stats, stats_warnings) = results

        snapshot = DashboardSnapshot(
            requested_at=requested_at,
            activities=feed.items,
            deadlines=deadlines,
            progress=progress,
            stats=stats,
            warnings=[str(w) for w in feed.warnings] + deadline_warnings + stats_warnings,
        )
        published = await self._publish(snapshot, generation)
        logger.info(
            "force_sync_completed",
            generation=generation,
            published=published,
            activities=len(snapshot.activities),
            deadlines=len(snapshot.deadlines),
        )

        if published and self.refetch_delay is not None:
            self.pending_refetch = asyncio.create_task(
                self._delayed_refetch(snapshot, generation)
            )
        return snapshot

    async def _delayed_refetch(
        self, snapshot: DashboardSnapshot, generation: int
    ) -> DashboardSnapshot | None:
        await asyncio.sleep(self.refetch_delay)
        if not self._is_current(generation):
            logger.debug("delayed_refetch_superseded", generation=generation)
            return None

        deadlines = await self._fetch_deadlines()
        if not deadlines:
            logger.debug("delayed_refetch_empty", generation=generation)
            return None
        if snapshot.deadlines:
            logger.debug("delayed_refetch_unchanged", generation=generation)
            return None
        if not self._is_current(generation):
            logger.debug("delayed_refetch_superseded", generation=generation)
            return None

        progress = await self.calculator.compute_progress(deadlines=deadlines)
        updated = snapshot.model_copy(update={"deadlines": deadlines, "progress": progress})
        if await self._publish(updated, generation):
            logger.info("delayed_refetch_published", deadlines=len(deadlines))
            return updated
        return None

    async def wait_for_refetch(self) -> DashboardSnapshot | None:
        """Wait for the pending delayed re-fetch, if any, and return what it published."""
        task = self.pending_refetch
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            return None

    def _cancel_pending(self) -> None:
        if self.pending_refetch is not None and not self.pending_refetch.done():
            self.pending_refetch.cancel()
        self.pending_refetch = None

    async def aclose(self) -> None:
        """Cancel a pending delayed re-fetch."""
        task = self.pending_refetch
        self._cancel_pending()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
