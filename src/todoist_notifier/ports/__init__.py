"""Ports - interfaces/protocols for external dependencies."""

from .task_repo import TaskRepository
from .chat_gateway import CallbackRef, ChatGateway, MessageRef

__all__ = [
    "TaskRepository",
    "ChatGateway",
    "MessageRef",
    "CallbackRef",
]
