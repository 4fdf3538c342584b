"""Todoist API adapter - HTTP client for task fetching and updates."""

import logging
import time
import uuid

import requests

from todoist_notifier.config import Config, load_config
from todoist_notifier.core.tasks import Project, Task

logger = logging.getLogger(__name__)

API_BASE = "https://api.todoist.com/rest/v2"
SYNC_URL = "https://api.todoist.com/sync/v9/sync"


class AuthenticationError(Exception):
    """Raised when no API token is configured."""

    pass


class TodoistError(Exception):
    """Raised when the Todoist API is unreachable or returns a bad response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TodoistAdapter:
    """
    Todoist REST API adapter.

    Implements TaskRepository protocol. Retries transport errors with a fixed
    delay; HTTP errors and undecodable bodies are raised as TodoistError.
    No business logic - just I/O.
    """

    def __init__(
        self,
        config: Config | None = None,
        session: requests.Session | None = None,
        retries: int = 5,
        retry_delay: float = 1.0,
        timeout: float = 5.0,
    ):
        self.config = config or load_config()
        if not self.config.todoist_token:
            raise AuthenticationError("TODOIST_TOKEN not configured.")
        self.retries = retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers["Authorization"] = f"Bearer {self.config.todoist_token}"

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send a request, retrying transport errors only."""
        last_error: Exception | None = None
        for attempt in range(1, self.retries + 1):
            try:
                return self._session.request(method, url, timeout=self.timeout, **kwargs)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = e
                logger.warning(f"Request {method} {url} failed (attempt {attempt}/{self.retries}): {e}")
                if attempt < self.retries:
                    time.sleep(self.retry_delay)
        raise TodoistError(f"{method} {url} failed after {self.retries} attempts: {last_error}")

    def _api_request(self, method: str, endpoint: str, **kwargs) -> dict | list:
        """Make authenticated API request and decode the JSON body."""
        url = f"{API_BASE}{endpoint}"
        logger.debug(f"Sending {method} {url}")
        resp = self._send(method, url, **kwargs)

        if resp.status_code != 200:
            logger.warning(f"Unexpected status code {resp.status_code} from {url}")
            logger.debug(f"Response payload: {resp.text[:1024]}")
            raise TodoistError(f"Unexpected status code: {resp.status_code}", resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise TodoistError(f"Decode response: {e}") from e

    def fetch_tasks(self, include_completed: bool = False) -> list[Task]:
        """Fetch all tasks."""
        data = self._api_request(
            "GET",
            "/tasks",
            params={"is_completed": str(include_completed).lower()},
        )
        return [Task.from_api(t) for t in data]

    def fetch_projects(self) -> list[Project]:
        """Fetch all projects."""
        data = self._api_request("GET", "/projects")
        return [Project.from_api(p) for p in data]

    def update_task(self, task_id: str, priority: int, labels: list[str]) -> Task:
        """Set priority and replace the label list."""
        body = {"priority": int(priority), "labels": labels}
        logger.debug(f"Updating task {task_id}: {body}")
        data = self._api_request("POST", f"/tasks/{task_id}", json=body)
        return Task.from_api(data)

    def move_task(self, task_id: str, project_id: str) -> None:
        """Move a task to another project (REST v2 cannot, so this uses Sync)."""
        command = {
            "type": "item_move",
            "uuid": str(uuid.uuid4()),
            "args": {"id": task_id, "project_id": project_id},
        }
        logger.debug(f"Moving task {task_id} to project {project_id}")
        resp = self._send("POST", SYNC_URL, json={"commands": [command]})
        if resp.status_code != 200:
            raise TodoistError(f"Unexpected status code: {resp.status_code}", resp.status_code)
        try:
            status = resp.json().get("sync_status", {}).get(command["uuid"])
        except ValueError as e:
            raise TodoistError(f"Decode response: {e}") from e
        if status != "ok":
            raise TodoistError(f"Move task {task_id} rejected: {status}")
