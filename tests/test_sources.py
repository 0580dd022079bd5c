import asyncio
from datetime import datetime, timezone

from src.dashboard.sources import (
    AssignmentSource,
    CalendarSource,
    LessonSource,
    ResourceSource,
)


def test_lesson_source_maps_lesson_plans(api, client):
    api.lesson_plans = [
        {"_id": "l1", "title": "Fractions", "createdAt": "2026-10-10T09:00:00.000Z"},
    ]

    items = asyncio.run(LessonSource(client, 5).activities())

    assert len(items) == 1
    item = items[0]
    assert item.id == "lesson_l1"
    assert item.text == "Created lesson plan: Fractions"
    assert item.category == "lesson"
    assert item.timestamp == datetime(2026, 10, 10, 9, 0, tzinfo=timezone.utc)


def test_lesson_source_keeps_most_recent_and_falls_back_to_updated_at(client):
    source = LessonSource(client, 2)
    records = source.parse(
        [
            {"_id": 1, "title": "Old", "createdAt": "2026-01-01"},
            {"_id": 2, "title": "Newest", "updatedAt": "2026-03-01T00:00:00Z"},
            {"_id": 3, "title": "Middle", "createdAt": "2026-02-01"},
        ]
    )
    items = source.to_activities(source.most_recent(records))
    assert [i.id for i in items] == ["lesson_2", "lesson_3"]


def test_malformed_records_are_skipped_individually(client):
    source = LessonSource(client, 5)
    records = source.parse(
        [
            {"_id": "ok", "title": "Fine", "createdAt": "2026-10-01"},
            {"_id": "no-title", "createdAt": "2026-10-01"},
            {"_id": "no-time", "title": "Timeless"},
            {"title": "No id", "createdAt": "2026-10-01"},
            "not a record",
        ]
    )
    assert [r.id for r in records] == ["ok"]


def test_assignment_source_emits_graded_activity(client):
    source = AssignmentSource(client, 10)
    records = source.parse(
        [
            {
                "_id": "a1",
                "title": "Essay",
                "status": "graded",
                "subject": "English",
                "totalPoints": 50,
                "createdAt": "2026-10-01T10:00:00Z",
                "updatedAt": "2026-10-05T10:00:00Z",
            },
            {"_id": "a2", "name": "Quiz", "status": "draft", "createdAt": "2026-10-02T10:00:00Z"},
        ]
    )
    items = source.to_activities(source.most_recent(records))

    assert [i.id for i in items] == [
        "assignment_created_a2",
        "assignment_created_a1",
        "assignment_graded_a1",
    ]
    graded = items[2]
    assert graded.text == "Graded assignment: Essay"
    assert graded.timestamp == datetime(2026, 10, 5, 10, 0, tzinfo=timezone.utc)
    assert graded.details == "Subject: English, Total Points: 50"
    assert items[0].text == "Created assignment: Quiz"
    assert items[0].details == "Subject: General, Total Points: 100"
    assert all(i.category == "grade" for i in items)


def test_resource_source_uses_date_added(client):
    source = ResourceSource(client, 3)
    records = source.parse([{"_id": "r1", "title": "Worksheet", "dateAdded": "2026-09-30"}])
    [item] = source.to_activities(source.most_recent(records))
    assert item.id == "resource_r1"
    assert item.text == "Added resource: Worksheet"
    assert item.category == "resource"
    assert item.timestamp == datetime(2026, 9, 30, tzinfo=timezone.utc)


CALENDAR = [
    {"_id": "e1", "title": "Staff meeting", "type": "meeting", "date": "2026-10-20", "createdAt": "2026-10-01T08:00:00Z"},
    {"_id": "e2", "title": "Grade essays", "type": "deadline", "className": "deadline deadline-grading priority-high", "date": "2026-10-21", "createdAt": "2026-10-09T08:00:00Z"},
    {"_id": "e3", "title": "Algebra", "type": "lesson", "date": "2026-10-22", "createdAt": "2026-10-02T08:00:00Z"},
    {"_id": "e4", "title": "Parents evening", "type": "meeting", "className": "Deadline-Planning", "date": "2026-10-23", "completed": True},
    {"_id": "e5", "title": "Field trip", "type": "trip", "date": "2026-10-24", "createdAt": "2026-10-03T08:00:00Z"},
    {"_id": "e6", "title": "Unit test", "type": "assessment", "date": "2026-10-25", "createdAt": "2026-09-01T08:00:00Z"},
]


def test_calendar_activities_exclude_deadlines(client):
    source = CalendarSource(client, 3)
    records = source.parse(CALENDAR)
    items = source.to_activities(source.most_recent(records))

    assert [i.id for i in items] == ["event_e5", "event_e3", "event_e1"]
    assert [i.category for i in items] == ["other", "lesson", "meeting"]
    assert items[0].text == "Added trip: Field trip"


def test_calendar_deadlines_by_type_or_label(client):
    source = CalendarSource(client, 3)
    deadlines = source.deadlines(source.parse(CALENDAR))

    assert [d.id for d in deadlines] == ["e2", "e4"]
    grading, planning = deadlines
    assert grading.category == "grading"
    assert grading.priority == "high"
    assert not grading.completed
    assert planning.category == "planning"
    assert planning.priority == "medium"
    assert planning.completed
    assert planning.due_date == datetime(2026, 10, 23, tzinfo=timezone.utc)


def test_fetch_deadlines_goes_through_api(api, client):
    api.calendar = list(CALENDAR)
    deadlines = asyncio.run(CalendarSource(client, 3).fetch_deadlines())
    assert len(deadlines) == 2
    assert len(api.calls("GET", "/calendar")) == 1
