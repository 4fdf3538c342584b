"""Shared fixtures and test doubles."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from todoist_notifier.core.tasks import Priority, Project, Task
from todoist_notifier.ports.chat_gateway import CallbackRef, MessageRef

KYIV = ZoneInfo("Europe/Kyiv")


class FakeClock:
    """Clock test double with a settable time."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class FakeRepo:
    """In-memory TaskRepository that records writes."""

    def __init__(self, tasks=None, projects=None):
        self.tasks = list(tasks or [])
        self.projects = list(projects or [])
        self.updates: list[tuple[str, int, list[str]]] = []
        self.moves: list[tuple[str, str]] = []
        self.project_fetches = 0
        self.fail_fetch = False
        self.fail_projects = False
        self.fail_update = False
        self.fail_move = False

    def fetch_tasks(self, include_completed: bool = False) -> list[Task]:
        if self.fail_fetch:
            raise RuntimeError("todoist down")
        return list(self.tasks)

    def fetch_projects(self) -> list[Project]:
        self.project_fetches += 1
        if self.fail_projects:
            raise RuntimeError("todoist down")
        return list(self.projects)

    def update_task(self, task_id: str, priority: int, labels: list[str]) -> Task:
        if self.fail_update:
            raise RuntimeError("update failed")
        self.updates.append((task_id, priority, labels))
        task = next(t for t in self.tasks if t.id == task_id)
        task.priority = priority
        task.labels = labels
        return task

    def move_task(self, task_id: str, project_id: str) -> None:
        if self.fail_move:
            raise RuntimeError("move failed")
        self.moves.append((task_id, project_id))


class FakeChat:
    """ChatGateway test double that records every call."""

    def __init__(self):
        self.sent: list[tuple[int, str, list | None]] = []
        self.edits: list[tuple[MessageRef, str, list | None]] = []
        self.answers: list[tuple[str, str | None]] = []
        self.fail_sends_containing: str | None = None
        self.failing_edits = 0
        self._next_id = 1

    async def send_message(self, chat_id, text, keyboard=None) -> MessageRef:
        if self.fail_sends_containing and self.fail_sends_containing in text:
            raise RuntimeError("send failed")
        self.sent.append((chat_id, text, keyboard))
        ref = MessageRef(chat_id=chat_id, message_id=self._next_id)
        self._next_id += 1
        return ref

    async def edit_message(self, ref, text, keyboard=None) -> None:
        if self.failing_edits:
            self.failing_edits -= 1
            raise RuntimeError("edit failed")
        self.edits.append((ref, text, keyboard))

    async def answer_callback(self, callback_id, alert=None) -> None:
        self.answers.append((callback_id, alert))

    @property
    def last_edit(self):
        return self.edits[-1]

    @property
    def last_alert(self):
        return self.answers[-1][1]


def make_task(
    id: str = "1",
    content: str = "Task",
    priority: int = Priority.P4,
    due_date: date | None = None,
    project_id: str = "p1",
    labels: list[str] | None = None,
) -> Task:
    return Task(
        id=id,
        content=content,
        priority=priority,
        due_date=due_date,
        project_id=project_id,
        labels=labels or [],
    )


def callback_ref(callback_id: str = "cb", message_id: int = 1) -> CallbackRef:
    return CallbackRef(callback_id=callback_id, message=MessageRef(chat_id=42, message_id=message_id))


@pytest.fixture
def now():
    return datetime(2026, 1, 11, 10, 0, tzinfo=KYIV)


@pytest.fixture
def today(now):
    return now.date()


@pytest.fixture
def tomorrow(now):
    return now.date() + timedelta(days=1)


@pytest.fixture
def clock(now):
    return FakeClock(now)
