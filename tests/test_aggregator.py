import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from src.dashboard.aggregator import ActivityAggregator, merge
from src.dashboard.errors import AllSourcesFailed, TransientError
from src.dashboard.models import ActivityItem
from src.dashboard.sources import (
    AssignmentSource,
    CalendarSource,
    LessonSource,
    ResourceSource,
    Source,
)

T0 = (datetime.now(timezone.utc) - timedelta(days=9)).replace(microsecond=0)


class StaticSource(Source):
    """Source returning canned items, or raising."""

    def __init__(self, name, items=(), error=None):
        super().__init__(client=None, limit=10)
        self.name = name
        self.items = list(items)
        self.error = error
        self.calls = 0

    async def activities(self):
        self.calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return list(self.items)


def item(id_, minutes, text="Created thing", category="other"):
    return ActivityItem(id=id_, text=text, timestamp=T0 + timedelta(minutes=minutes), category=category)


def sources_for(client):
    return [
        LessonSource(client, 5),
        AssignmentSource(client, 10),
        ResourceSource(client, 3),
        CalendarSource(client, 3),
    ]


def test_single_lesson_plan(api, client, activity_log):
    api.lesson_plans = [{"_id": "l1", "title": "Fractions", "createdAt": T0.isoformat()}]
    aggregator = ActivityAggregator(activity_log, sources_for(client))

    items = asyncio.run(aggregator.aggregate())

    assert len(items) == 1
    assert items[0].category == "lesson"
    assert items[0].text == "Created lesson plan: Fractions"


def test_system_entries_are_filtered(api, client, activity_log):
    activity_log.log("deadline sync refreshed")
    activity_log.log("Dashboard initialized")
    kept = activity_log.log("weekly task: mark essays", "deadline")
    aggregator = ActivityAggregator(activity_log, sources_for(client))

    items = asyncio.run(aggregator.aggregate())

    assert [i.id for i in items] == [kept.id]
    assert items[0].text == "Added weekly task: mark essays"
    # the log itself is untouched
    assert len(activity_log) == 3
    assert activity_log.entries()[0].text == "weekly task: mark essays"


def test_merges_dedups_and_orders(activity_log):
    logged = activity_log.log("Created assignment: Essay", "grade")
    duplicate = ActivityItem(
        id=logged.id, text="Created assignment: Essay (server)", timestamp=T0, category="grade"
    )
    sources = [
        StaticSource("a", [item("x", 5), item("y", 1), duplicate]),
        StaticSource("b", [item("x", 30, text="later copy"), item("z", 10)]),
    ]
    aggregator = ActivityAggregator(activity_log, sources)

    items = asyncio.run(aggregator.aggregate())

    ids = [i.id for i in items]
    assert len(ids) == len(set(ids))
    assert ids == [logged.id, "z", "x", "y"]
    assert next(i for i in items if i.id == "x").timestamp == T0 + timedelta(minutes=5)
    assert items[0].text == "Created assignment: Essay"
    assert all(a.timestamp >= b.timestamp for a, b in zip(items, items[1:]))


def test_aggregation_is_idempotent(api, client, activity_log):
    api.lesson_plans = [{"_id": f"l{i}", "title": f"Lesson {i}", "createdAt": (T0 + timedelta(hours=i)).isoformat()} for i in range(3)]
    api.assignments = [{"_id": "a1", "title": "Essay", "status": "graded", "createdAt": T0.isoformat(), "updatedAt": T0.isoformat()}]
    api.calendar = [{"_id": "e1", "title": "Staff", "type": "meeting", "date": T0.isoformat()}]
    activity_log.log("Deleted task: Old")
    aggregator = ActivityAggregator(activity_log, sources_for(client))

    first = asyncio.run(aggregator.aggregate())
    second = asyncio.run(aggregator.aggregate())

    assert [i.id for i in first] == [i.id for i in second]
    assert first == second


def test_one_failing_source_degrades(activity_log):
    healthy = StaticSource("lessons", [item("lesson_1", 0)])
    broken = StaticSource("assignments", error=TransientError("503"))
    aggregator = ActivityAggregator(activity_log, [healthy, broken])

    result = asyncio.run(aggregator.aggregate_with_report())

    assert [i.id for i in result.items] == ["lesson_1"]
    assert [w.source for w in result.warnings] == ["assignments"]
    assert isinstance(result.warnings[0].cause, TransientError)


def test_failing_endpoint_degrades(api, client, activity_log):
    api.lesson_plans = [{"_id": "l1", "title": "Fractions", "createdAt": T0.isoformat()}]
    api.failures["GET /assignments"] = 500
    api.failures["GET /resources"] = 0
    aggregator = ActivityAggregator(activity_log, sources_for(client))

    result = asyncio.run(aggregator.aggregate_with_report())

    assert [i.id for i in result.items] == ["lesson_l1"]
    assert sorted(w.source for w in result.warnings) == ["assignments", "resources"]
    # transient failures were retried once before giving up
    assert len(api.calls("GET", "/assignments")) == 2


def test_all_sources_failing_is_fatal(activity_log):
    activity_log.log("Deleted task: Old")
    sources = [StaticSource(n, error=RuntimeError("down")) for n in ("a", "b")]
    aggregator = ActivityAggregator(activity_log, sources)

    with pytest.raises(AllSourcesFailed) as excinfo:
        asyncio.run(aggregator.aggregate())
    assert [f.source for f in excinfo.value.failures] == ["a", "b"]


def test_sources_run_concurrently(activity_log):
    running = 0
    peak = 0

    class Probe(StaticSource):
        async def activities(self):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return []

    aggregator = ActivityAggregator(activity_log, [Probe("a"), Probe("b"), Probe("c")])
    assert asyncio.run(aggregator.aggregate()) == []
    assert peak == 3


def test_merge_keeps_first_occurrence():
    merged = merge([item("a", 0, text="first")], [item("a", 10, text="second")])
    assert [i.text for i in merged] == ["first"]
