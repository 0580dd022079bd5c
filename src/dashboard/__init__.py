"""Activity feed and deadline progress engine for the teacher dashboard.

Merges a session-local log of user actions with lesson plans, assignments,
resources and calendar events from the REST API, computes the deadline
completion breakdown, and coordinates force syncs against the backend.
"""

from src.dashboard.activity_log import ActivityLog
from src.dashboard.aggregator import ActivityAggregator
from src.dashboard.models import (
    ActivityItem,
    DashboardSnapshot,
    DeadlineItem,
    ProgressBreakdown,
)
from src.dashboard.progress import ProgressCalculator
from src.dashboard.session import DashboardSession
from src.dashboard.sync import SyncOrchestrator

__all__ = [
    "ActivityLog",
    "ActivityAggregator",
    "ProgressCalculator",
    "SyncOrchestrator",
    "DashboardSession",
    "ActivityItem",
    "DeadlineItem",
    "ProgressBreakdown",
    "DashboardSnapshot",
]
