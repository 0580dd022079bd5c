"""Text classification and formatting rules shared by the feed and deadlines.

Every rule table here is ordered and first match wins; the order is part of
the behaviour (e.g. a label "grading meeting" is a grading deadline).
"""

from datetime import datetime, timezone

from src.dashboard.models import ActivityCategory, DeadlineCategory, Priority

# Phrases marking log entries that only drive other subsystems
# (initialization, sync, refresh, dashboard housekeeping).
SYSTEM_PHRASES: tuple[str, ...] = ("initialized", "synced", "refreshed", "dashboard")

ACTION_VERBS: tuple[str, ...] = (
    "added",
    "created",
    "deleted",
    "edited",
    "completed",
    "reopened",
    "graded",
)

# (keyword, verb): verb prefixed onto log text that lacks one
VERB_RULES: tuple[tuple[str, str], ...] = (
    ("task", "Added"),
    ("plan", "Created"),
)
DEFAULT_VERB = "Created"

DEADLINE_CATEGORY_RULES: tuple[tuple[str, DeadlineCategory], ...] = (
    ("grading", "grading"),
    ("meeting", "meeting"),
    ("planning", "planning"),
)

PRIORITY_RULES: tuple[tuple[str, Priority], ...] = (
    ("high", "high"),
    ("low", "low"),
)

EVENT_CATEGORIES: dict[str, ActivityCategory] = {
    "deadline": "deadline",
    "meeting": "meeting",
    "lesson": "lesson",
    "assessment": "assessment",
}

DEADLINE_TYPE = "deadline"


def is_system_entry(text: str) -> bool:
    """True if the text is internal housekeeping rather than a user action."""
    lowered = text.lower()
    return any(phrase in lowered for phrase in SYSTEM_PHRASES)


def infer_verb(text: str) -> str:
    lowered = text.lower()
    for keyword, verb in VERB_RULES:
        if keyword in lowered:
            return verb
    return DEFAULT_VERB


def normalize_activity_text(text: str) -> str:
    """Make a log entry read as "<Verb> ...".

    Text already starting with a known action verb is kept; otherwise a verb
    is inferred from VERB_RULES. The first letter is capitalized either way.

    >>> normalize_activity_text("weekly task: mark essays")
    'Added weekly task: mark essays'
    >>> normalize_activity_text("graded quiz 3")
    'Graded quiz 3'
    """
    lowered = text.lower()
    if not any(lowered.startswith(verb) for verb in ACTION_VERBS):
        text = f"{infer_verb(text)} {text}"
    return text[:1].upper() + text[1:]


def _first_match(label: str | None, rules, default):
    if not label:
        return default
    lowered = label.lower()
    for keyword, value in rules:
        if keyword in lowered:
            return value
    return default


def deadline_category(label: str | None) -> DeadlineCategory:
    return _first_match(label, DEADLINE_CATEGORY_RULES, "other")


def deadline_priority(label: str | None) -> Priority:
    return _first_match(label, PRIORITY_RULES, "medium")


def deadline_label(category: DeadlineCategory, priority: Priority) -> str:
    """Label written on new deadline events; parses back to the same pair."""
    return f"deadline deadline-{category} priority-{priority}"


def is_deadline_event(event_type: str | None, label: str | None) -> bool:
    """Deadline by explicit type, or by "deadline" anywhere in the label."""
    if event_type == DEADLINE_TYPE:
        return True
    return bool(label) and DEADLINE_TYPE in label.lower()


def event_category(event_type: str | None) -> ActivityCategory:
    return EVENT_CATEGORIES.get(event_type or "", "other")


def format_relative_time(moment: datetime, now: datetime | None = None) -> str:
    """Render a timestamp the way the activity feed shows it.

    Under an hour: minutes ("Just now" for the first two). Under a day:
    hours. Under a week: days ("Yesterday" for one). Older: "Oct 3, 2026".
    """
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = (now - moment).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 60:
        return "Just now" if minutes <= 1 else f"{minutes} minutes ago"
    if hours < 24:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    if days < 7:
        return "Yesterday" if days == 1 else f"{days} days ago"
    return f"{moment:%b} {moment.day}, {moment.year}"
