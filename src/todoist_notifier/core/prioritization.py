"""In-memory state for in-progress prioritization dialogs."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from todoist_notifier.telegram_states import PrioritizationStep

from .clock import Clock
from .tasks import Task

logger = logging.getLogger(__name__)

STATE_TIMEOUT = timedelta(hours=24)


@dataclass
class PrioritizationState:
    """Working copy of one task while the user answers the dialog."""

    task_id: str
    content: str
    project_id: str
    priority: int
    created_at: datetime
    time_label: str | None = None
    original_project_id: str = ""
    original_labels: list[str] = field(default_factory=list)
    step: PrioritizationStep = PrioritizationStep.AWAITING_PRIORITY

    @classmethod
    def for_task(cls, task: Task, now: datetime) -> "PrioritizationState":
        return cls(
            task_id=task.id,
            content=task.content,
            project_id=task.project_id,
            priority=task.priority,
            created_at=now,
            original_project_id=task.project_id,
            original_labels=list(task.labels),
        )

    @property
    def project_changed(self) -> bool:
        return self.project_id != self.original_project_id

    def is_expired(self, now: datetime, timeout: timedelta = STATE_TIMEOUT) -> bool:
        return now - self.created_at > timeout

    def final_labels(self) -> list[str]:
        """Labels written back on finalize.

        Only the chosen time label survives; original_labels are not merged in.
        """
        return [self.time_label] if self.time_label else []


class StateStore:
    """
    Thread-safe map of task id -> PrioritizationState.

    One lock guards the whole map. Expired entries are never returned by
    get(), even before sweep_expired() removes them.
    """

    def __init__(self, clock: Clock, timeout: timedelta = STATE_TIMEOUT):
        self.clock = clock
        self.timeout = timeout
        self._states: dict[str, PrioritizationState] = {}
        self._lock = threading.Lock()

    def save(self, task_id: str, state: PrioritizationState) -> None:
        with self._lock:
            self._states[task_id] = state

    def get(self, task_id: str) -> PrioritizationState | None:
        with self._lock:
            state = self._states.get(task_id)
        if state is None or state.is_expired(self.clock.now(), self.timeout):
            return None
        return state

    def delete(self, task_id: str) -> None:
        with self._lock:
            self._states.pop(task_id, None)

    def sweep_expired(self, now: datetime | None = None) -> int:
        """Drop every state older than the timeout. Returns how many were removed."""
        now = now or self.clock.now()
        with self._lock:
            expired = [
                task_id
                for task_id, state in self._states.items()
                if state.is_expired(now, self.timeout)
            ]
            for task_id in expired:
                del self._states[task_id]
        for task_id in expired:
            logger.debug(f"Cleaned up expired prioritization state for task {task_id}")
        return len(expired)

    def __len__(self) -> int:
        """Number of live (unexpired) states."""
        now = self.clock.now()
        with self._lock:
            return sum(1 for state in self._states.values() if not state.is_expired(now, self.timeout))

    def __contains__(self, task_id: str) -> bool:
        return self.get(task_id) is not None
