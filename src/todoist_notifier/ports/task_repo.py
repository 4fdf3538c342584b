"""Task repository interface."""

from typing import Protocol

from todoist_notifier.core.tasks import Project, Task


class TaskRepository(Protocol):
    """Interface for reading and updating tasks in the task backend."""

    def fetch_tasks(self, include_completed: bool = False) -> list[Task]:
        """Fetch all active (or completed) tasks."""
        ...

    def fetch_projects(self) -> list[Project]:
        """Fetch all projects."""
        ...

    def update_task(self, task_id: str, priority: int, labels: list[str]) -> Task:
        """Set priority and replace labels. Returns the updated task."""
        ...

    def move_task(self, task_id: str, project_id: str) -> None:
        """Move a task to another project."""
        ...
