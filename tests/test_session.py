import asyncio
from datetime import date

from src.dashboard.config import DashboardConfig
from src.dashboard.session import DashboardSession


def test_initialize_clears_previous_entries(api, config):
    api.lesson_plans = [{"_id": "l1", "title": "Fractions", "createdAt": "2026-10-10T09:00:00Z"}]
    published = []

    async def scenario():
        async with DashboardSession(config, transport=api.transport, publish=published.append) as session:
            session.log("Deleted task: From a previous mount", "deadline")
            snapshot = await session.initialize()
            return session, snapshot

    session, snapshot = asyncio.run(scenario())

    assert len(session.activity_log) == 0
    assert [a.id for a in snapshot.activities] == ["lesson_l1"]
    assert published[0] is snapshot
    assert session.latest is snapshot


def test_session_exposes_log_aggregate_and_progress(api, config):
    async def scenario():
        async with DashboardSession(config, transport=api.transport) as session:
            await session.initialize()
            logged = session.log("weekly task: mark essays", "deadline")
            session.log("deadline sync refreshed")
            feed = await session.aggregate()
            progress = await session.compute_progress()
            session.clear()
            return logged, feed, progress, len(session.activity_log)

    logged, feed, progress, remaining = asyncio.run(scenario())

    assert [a.id for a in feed] == [logged.id]
    assert feed[0].text == "Added weekly task: mark essays"
    assert progress.total == 0
    assert remaining == 0


def test_session_deadline_round_trip(api, config):
    async def scenario():
        async with DashboardSession(config, transport=api.transport) as session:
            await session.initialize()
            created = await session.deadlines.add("Report cards", date(2099, 1, 1), "grading", "high")
            snapshot = await session.refresh()
            return created, snapshot

    created, snapshot = asyncio.run(scenario())

    assert [d.id for d in snapshot.deadlines] == [created.id]
    assert snapshot.progress.in_progress == 1
    assert snapshot.activities[0].text == "Added new grading task: Report cards"


def test_config_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("DASHBOARD_API_URL", "https://api.example.test")
    monkeypatch.setenv("DASHBOARD_ACTIVITY_LOG_SIZE", "10")
    monkeypatch.setenv("DASHBOARD_REFETCH_DELAY_SECONDS", "0.5")

    config = DashboardConfig(_env_file=None)

    assert config.api_url == "https://api.example.test"
    assert config.activity_log_size == 10
    assert config.refetch_delay_seconds == 0.5
    assert config.lesson_limit == 5


def test_reset_wipes_stores_stats_and_log(api, config):
    api.lesson_plans = [{"_id": "l1", "title": "Fractions", "createdAt": "2026-10-10T09:00:00Z"}]
    api.assignments = [{"_id": "a1", "title": "Essay", "createdAt": "2026-10-11T09:00:00Z"}]
    api.resources = [{"_id": "r1", "title": "Worksheet", "createdAt": "2026-10-12T09:00:00Z"}]
    api.calendar = [{"_id": "e1", "title": "Report cards", "type": "deadline", "date": "2099-01-01"}]
    api.stats.update(lessonsCreated=1, assignmentsCreated=1, weeklyProgress=40)

    async def scenario():
        async with DashboardSession(config, transport=api.transport) as session:
            await session.initialize()
            session.log("weekly task: mark essays", "deadline")
            snapshot = await session.reset()
            return snapshot, len(session.activity_log)

    snapshot, remaining = asyncio.run(scenario())

    assert api.lesson_plans == api.assignments == api.resources == api.calendar == []
    assert set(api.stats.values()) == {0}
    assert remaining == 0
    assert snapshot.activities == []
    assert snapshot.deadlines == []
    assert snapshot.progress.total == 0


def test_reset_continues_past_a_failing_store(api, config):
    api.calendar = [{"_id": "e1", "title": "Staff meeting", "type": "meeting", "date": "2099-01-01"}]
    api.lesson_plans = [{"_id": "l1", "title": "Fractions", "createdAt": "2026-10-10T09:00:00Z"}]
    api.resources = [{"_id": "r1", "title": "Worksheet", "createdAt": "2026-10-12T09:00:00Z"}]
    api.failures["DELETE /calendar/e1"] = 500

    async def scenario():
        async with DashboardSession(config, transport=api.transport) as session:
            return await session.reset()

    asyncio.run(scenario())

    assert [e["_id"] for e in api.calendar] == ["e1"]
    assert api.lesson_plans == []
    assert api.resources == []
