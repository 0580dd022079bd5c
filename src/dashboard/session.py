"""Dashboard session: owns the activity log and wires the engine together.

One DashboardSession corresponds to one mounted dashboard. It is created at
session start and handed to the UI, which talks to it through aggregate(),
compute_progress(), force_sync(), log(), clear() and reset().
"""

import uuid

import httpx

from src.dashboard.activity_log import ActivityLog
from src.dashboard.aggregator import ActivityAggregator
from src.dashboard.client import DashboardApiClient
from src.dashboard.config import DashboardConfig, get_config
from src.dashboard.deadlines import DeadlineCommands
from src.dashboard.errors import DashboardError
from src.dashboard.logging import (
    bind_session_context,
    clear_session_context,
    get_logger,
)
from src.dashboard.models import (
    ActivityCategory,
    ActivityItem,
    DashboardSnapshot,
    ProgressBreakdown,
)
from src.dashboard.progress import ProgressCalculator
from src.dashboard.sources import (
    AssignmentSource,
    CalendarSource,
    LessonSource,
    ResourceSource,
)
from src.dashboard.sync import Publisher, SyncOrchestrator

logger = get_logger(__name__)


class DashboardSession:
    """Everything one dashboard needs, built from a DashboardConfig.

    Args:
        config: Settings; defaults to the environment-backed singleton.
        client: API client to use; built from config (and closed by the
            session) when omitted.
        transport: httpx transport for the client built from config.
        publish: Receives every current DashboardSnapshot.
    """

    def __init__(
        self,
        config: DashboardConfig | None = None,
        client: DashboardApiClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        publish: Publisher | None = None,
    ) -> None:
        self.config = config or get_config()
        self.session_id = uuid.uuid4().hex[:12]
        self._owns_client = client is None
        self.client = client or DashboardApiClient.from_config(self.config, transport)

        self.activity_log = ActivityLog(self.config.activity_log_size)
        self.calendar = CalendarSource(self.client, self.config.calendar_limit)
        self.sources = [
            LessonSource(self.client, self.config.lesson_limit),
            AssignmentSource(self.client, self.config.assignment_limit),
            ResourceSource(self.client, self.config.resource_limit),
            self.calendar,
        ]
        self.aggregator = ActivityAggregator(self.activity_log, self.sources)
        self.calculator = ProgressCalculator(self.calendar, self.client)
        self.orchestrator = SyncOrchestrator(
            self.client,
            self.aggregator,
            self.calculator,
            self.calendar,
            publish=publish,
            refetch_delay=self.config.refetch_delay_seconds,
        )
        self.deadlines = DeadlineCommands(self.client, self.activity_log)

    async def __aenter__(self) -> "DashboardSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def initialize(self) -> DashboardSnapshot:
        """Start the dashboard: empty log, then a full force sync.

        The log is cleared before anything else runs so a remounted
        dashboard never shows entries from the previous mount twice.
        """
        bind_session_context(self.session_id, api_url=self.client.base_url)
        self.activity_log.clear()
        logger.info("dashboard_session_initializing")
        return await self.orchestrator.force_sync()

    async def refresh(self) -> DashboardSnapshot:
        """User-triggered refresh; same sequence as force_sync()."""
        return await self.orchestrator.force_sync()

    # Upward API ---------------------------------------------------------
    def log(
        self,
        text: str,
        category: ActivityCategory = "other",
        details: str | None = None,
    ) -> ActivityItem:
        return self.activity_log.log(text, category, details)

    def clear(self) -> None:
        self.activity_log.clear()

    async def aggregate(self) -> list[ActivityItem]:
        return await self.aggregator.aggregate()

    async def compute_progress(self) -> ProgressBreakdown:
        return await self.calculator.compute_progress()

    async def force_sync(self) -> DashboardSnapshot:
        return await self.orchestrator.force_sync()

    async def reset(self) -> DashboardSnapshot:
        """Wipe the backend's dashboard data, then resync from the empty state.

        Statistics are zeroed first and a failure there propagates. Record
        stores are then emptied one by one; a store that cannot be listed or
        emptied is logged and skipped so the others are still cleared.
        """
        await self.client.reset_stats()
        stores = {
            "/calendar": self.client.get_calendar_events,
            "/lesson-plans": self.client.get_lesson_plans,
            "/assignments": self.client.get_assignments,
            "/resources": self.client.get_resources,
        }
        for collection, fetch in stores.items():
            try:
                records = await fetch()
                for record in records:
                    await self.client.delete_record(collection, record["_id"])
            except (DashboardError, KeyError, TypeError) as e:
                logger.error("reset_store_failed", collection=collection, error=str(e))
                continue
            logger.info("reset_store_cleared", collection=collection, deleted=len(records))

        self.activity_log.clear()
        return await self.orchestrator.force_sync()

    @property
    def latest(self) -> DashboardSnapshot | None:
        return self.orchestrator.latest

    async def aclose(self) -> None:
        await self.orchestrator.aclose()
        if self._owns_client:
            await self.client.aclose()
        clear_session_context()
        logger.debug("dashboard_session_closed", session_id=self.session_id)
