"""Print the teacher dashboard (activity feed, deadlines, progress) as JSON or a table.

Standalone CLI script. Runs one dashboard initialization against the REST API:
force sync, aggregate the activity feed, compute the deadline breakdown, and
optionally wait for the delayed deadline re-fetch.

Run with: python scripts/dashboard_snapshot.py
Table:    python scripts/dashboard_snapshot.py --table
Refresh:  python scripts/dashboard_snapshot.py --wait-refetch
Logs:     python scripts/dashboard_snapshot.py --log-level DEBUG --log-json

Configuration comes from DASHBOARD_* environment variables (or .env):
DASHBOARD_API_URL, DASHBOARD_API_TOKEN, DASHBOARD_REFETCH_DELAY_SECONDS, ...

Exit codes:
  0 = success (snapshot on stdout)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime, timezone

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.dashboard.classify import format_relative_time  # noqa: E402
from src.dashboard.config import get_config  # noqa: E402
from src.dashboard.logging import setup_logging  # noqa: E402
from src.dashboard.models import DashboardSnapshot  # noqa: E402
from src.dashboard.session import DashboardSession  # noqa: E402


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Print the teacher dashboard snapshot as JSON or a table.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--table",
        action="store_true",
        help="Output a human-readable summary instead of JSON.",
    )
    parser.add_argument(
        "--wait-refetch",
        action="store_true",
        help="Wait for the delayed deadline re-fetch and print its snapshot if it published one.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override DASHBOARD_LOG_LEVEL (DEBUG, INFO, WARNING, ...).",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON lines on stderr.",
    )
    return parser.parse_args()


def _format_table(snapshot: DashboardSnapshot) -> str:
    """Render the snapshot as plain text sections."""
    now = datetime.now(timezone.utc)
    progress = snapshot.progress
    lines = [
        f"Weekly progress: {progress.weekly_progress}%",
        (
            f"  completed={progress.completed}  in progress={progress.in_progress}  "
            f"overdue={progress.overdue}  upcoming={progress.upcoming}"
        ),
        "",
        "Deadlines:",
    ]
    if not snapshot.deadlines:
        lines.append("  (none)")
    for deadline in snapshot.deadlines:
        mark = "x" if deadline.completed else " "
        lines.append(
            f"  [{mark}] {deadline.due_date:%Y-%m-%d}  {deadline.priority:<6}  "
            f"{deadline.category:<8}  {deadline.task}"
        )

    lines += ["", "Recent activity:"]
    if not snapshot.activities:
        lines.append("  (none)")
    widths = max((len(format_relative_time(a.timestamp, now)) for a in snapshot.activities), default=0)
    for activity in snapshot.activities:
        when = format_relative_time(activity.timestamp, now)
        lines.append(f"  {when.ljust(widths)}  {activity.category:<10}  {activity.text}")

    if snapshot.warnings:
        lines += ["", "Warnings:", *(f"  {w}" for w in snapshot.warnings)]
    return "\n".join(lines)


async def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging(
        json_output=args.log_json or config.log_json,
        log_level=args.log_level or config.log_level,
    )

    async with DashboardSession(config) as session:
        snapshot = await session.initialize()
        if args.wait_refetch:
            snapshot = await session.orchestrator.wait_for_refetch() or snapshot

    if args.table:
        print(_format_table(snapshot))
    else:
        print(json.dumps(snapshot.model_dump(mode="json", by_alias=True), indent=2))


if __name__ == "__main__":
    args = _parse_args()
    try:
        asyncio.run(main(args))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
