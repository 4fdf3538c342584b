"""Shared workflow layer between the CLI, the scheduler and Telegram.

TaskService wraps the blocking TaskRepository: every call runs in a worker
thread under an explicit timeout, and the filtering engine is applied with
the injected clock's notion of "now".
"""

import asyncio
import logging

from .cache import TTLCache
from .core.clock import Clock
from .core.tasks import (
    Project,
    Task,
    filter_today,
    filter_tomorrow,
    filter_unprioritized,
)
from .ports.task_repo import TaskRepository

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_PROJECT_CACHE_TTL = 24 * 60 * 60


class TaskService:
    """Fetch + filter + update, bounded by a per-call timeout."""

    def __init__(
        self,
        repo: TaskRepository,
        clock: Clock,
        project_cache_ttl: float = DEFAULT_PROJECT_CACHE_TTL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.repo = repo
        self.clock = clock
        self.timeout = timeout
        self._projects = TTLCache(self._fetch_projects, project_cache_ttl)

    async def _call(self, func, *args, timeout: float | None = None):
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout or self.timeout)

    async def _fetch_tasks(self, timeout: float | None = None) -> list[Task]:
        return await self._call(self.repo.fetch_tasks, False, timeout=timeout)

    async def _fetch_projects(self) -> list[Project]:
        projects = await self._call(self.repo.fetch_projects)
        logger.debug(f"Fetched {len(projects)} projects")
        return projects

    async def get_today_tasks(self, filter_by_time: bool = True, timeout: float | None = None) -> list[Task]:
        tasks = await self._fetch_tasks(timeout)
        return filter_today(tasks, self.clock.now(), filter_by_time)

    async def get_tomorrow_tasks(self, timeout: float | None = None) -> list[Task]:
        tasks = await self._fetch_tasks(timeout)
        return filter_tomorrow(tasks, self.clock.now())

    async def get_tomorrow_unprioritized(self, timeout: float | None = None) -> list[Task]:
        return filter_unprioritized(await self.get_tomorrow_tasks(timeout))

    async def get_projects(self) -> list[Project]:
        """Projects, served from the TTL cache."""
        return await self._projects.get()

    async def update_task(self, task_id: str, priority: int, labels: list[str]) -> Task:
        return await self._call(self.repo.update_task, task_id, priority, labels)

    async def move_task(self, task_id: str, project_id: str) -> None:
        """Move a task; a rejected move drops the cached project list."""
        try:
            await self._call(self.repo.move_task, task_id, project_id)
        except Exception:
            # The target may have been deleted since the list was cached
            self._projects.invalidate()
            raise
