"""Session-scoped log of user actions.

Entries are recorded the moment the UI performs an action, before (and
independently of) any backend confirmation. The log lives only as long as
the dashboard session that owns it.
"""

import itertools
import time
from datetime import datetime, timezone

from src.dashboard.logging import get_logger
from src.dashboard.models import ActivityCategory, ActivityItem

logger = get_logger(__name__)

DEFAULT_MAX_ENTRIES = 50


class ActivityLog:
    """Bounded, most-recent-first list of ActivityItems.

    log() and clear() are synchronous and never yield, so on a single event
    loop an aggregation always reads a consistent snapshot.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: list[ActivityItem] = []
        self._seq = itertools.count(1)

    def log(
        self,
        text: str,
        category: ActivityCategory = "other",
        details: str | None = None,
    ) -> ActivityItem:
        """Record an action and return the stored item.

        Args:
            text: Human-readable description, e.g. "Deleted task: Mark essays".
            category: Feed icon category.
            details: Optional secondary line.

        Returns:
            The new ActivityItem, already at the front of the log.
        """
        now = datetime.now(timezone.utc)
        item = ActivityItem(
            id=f"activity_{time.time_ns() // 1_000_000}_{next(self._seq)}",
            text=text,
            timestamp=now,
            category=category,
            details=details,
        )
        self._entries.insert(0, item)
        del self._entries[self.max_entries :]
        logger.debug(
            "activity_logged",
            activity_id=item.id,
            category=category,
            size=len(self._entries),
        )
        return item

    def clear(self) -> None:
        """Forget every entry (called once per dashboard initialization)."""
        logger.debug("activity_log_cleared", dropped=len(self._entries))
        self._entries = []

    def entries(self) -> tuple[ActivityItem, ...]:
        """Snapshot of the log, most recent first."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self.entries())
