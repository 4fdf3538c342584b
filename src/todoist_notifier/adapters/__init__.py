"""Adapters - I/O implementations of ports."""

from .todoist_api import TodoistAdapter, AuthenticationError, TodoistError
from .telegram_chat import TelegramChatGateway

__all__ = [
    "TodoistAdapter",
    "AuthenticationError",
    "TodoistError",
    "TelegramChatGateway",
]
