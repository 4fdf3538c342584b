"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import IntEnum


class Priority(IntEnum):
    """Todoist priority. Wire values are inverted: P1 (urgent) is 4."""

    P1 = 4
    P2 = 3
    P3 = 2
    P4 = 1

    @classmethod
    def coerce(cls, value) -> "Priority | int":
        """Map a wire value onto the enum, keeping unknown values as plain ints."""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return int(value) if isinstance(value, int) else cls.P4


# Checked in this order; the first failing marker hides the task.
TIME_LABEL_HOURS = {
    "12pm": 12,
    "3pm": 15,
    "6pm": 18,
    "9pm": 21,
}


@dataclass
class Task:
    """A Todoist task."""

    id: str
    content: str
    priority: int
    due_date: date | None
    project_id: str
    labels: list[str] = field(default_factory=list)

    @property
    def time_labels(self) -> list[str]:
        return time_labels(self.labels)

    @classmethod
    def from_api(cls, data: dict) -> "Task":
        """Create Task from Todoist REST API response."""
        return cls(
            id=str(data["id"]),
            content=data.get("content", ""),
            priority=Priority.coerce(data.get("priority", Priority.P4)),
            due_date=parse_due_date(data.get("due")),
            project_id=str(data.get("project_id") or ""),
            labels=list(data.get("labels") or []),
        )


@dataclass
class Project:
    """A Todoist project."""

    id: str
    name: str

    @classmethod
    def from_api(cls, data: dict) -> "Project":
        return cls(id=str(data["id"]), name=data.get("name", ""))


def parse_due_date(due: dict | None) -> date | None:
    """Extract the calendar date of a Todoist due object.

    Missing or malformed dates are treated as "no date".
    """
    if not due or not isinstance(due, dict):
        return None
    raw = due.get("date")
    if not raw or not isinstance(raw, str):
        return None
    try:
        return date.fromisoformat(raw.split("T")[0])
    except ValueError:
        return None


def time_labels(labels: list[str]) -> list[str]:
    """Reserved time markers present in labels, in check order."""
    return [label for label in TIME_LABEL_HOURS if label in labels]


def has_time_label(labels: list[str]) -> bool:
    return any(label in TIME_LABEL_HOURS for label in labels)


def should_show_task(task: Task, now: datetime) -> bool:
    """
    Decide whether a task due today should be surfaced at this hour.

    Time markers win over priority. With several markers, the first one
    (in 12pm, 3pm, 6pm, 9pm order) whose hour has not come yet hides the task.
    Without markers: P1 and P4 always show, P2 from 15:00, P3 from 18:00.
    """
    hour = now.hour
    markers = task.time_labels
    if markers:
        for marker in markers:
            if hour < TIME_LABEL_HOURS[marker]:
                return False
        return True

    if task.priority in (Priority.P1, Priority.P4):
        return True
    if task.priority == Priority.P2:
        return hour >= 15
    if task.priority == Priority.P3:
        return hour >= 18
    return False


def sort_tasks(tasks: list[Task]) -> list[Task]:
    """
    Sort by priority (descending) then project id (ascending).

    Pure function - no I/O. Stable for equal keys.
    """
    return sorted(tasks, key=lambda t: (-int(t.priority), t.project_id))


def filter_today(tasks: list[Task], now: datetime, filter_by_time: bool) -> list[Task]:
    """Tasks due on now's calendar date, optionally gated by should_show_task."""
    today = now.date()
    res = [t for t in tasks if t.due_date == today]
    if filter_by_time:
        res = [t for t in res if should_show_task(t, now)]
    return sort_tasks(res)


def filter_tomorrow(tasks: list[Task], now: datetime) -> list[Task]:
    """Tasks due the calendar day after now. No time or priority gating."""
    tomorrow = now.date() + timedelta(days=1)
    return sort_tasks([t for t in tasks if t.due_date == tomorrow])


def filter_unprioritized(tasks: list[Task]) -> list[Task]:
    """Tasks still at the default priority (P4) with no time marker."""
    return sort_tasks(
        [t for t in tasks if not has_time_label(t.labels) and t.priority == Priority.P4]
    )
