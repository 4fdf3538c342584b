"""Chat delivery interface."""

from dataclasses import dataclass
from typing import Protocol

from todoist_notifier.core.callbacks import Keyboard


@dataclass(frozen=True)
class MessageRef:
    """Identifies a sent message so it can be edited later."""

    chat_id: int
    message_id: int


class ChatGateway(Protocol):
    """Interface for sending, editing and acknowledging chat messages."""

    async def send_message(self, chat_id: int, text: str, keyboard: Keyboard | None = None) -> MessageRef:
        """Send a message, optionally with an inline keyboard."""
        ...

    async def edit_message(self, ref: MessageRef, text: str, keyboard: Keyboard | None = None) -> None:
        """Replace the text (and keyboard) of a sent message."""
        ...

    async def answer_callback(self, callback_id: str, alert: str | None = None) -> None:
        """Acknowledge a button press, optionally with an alert popup."""
        ...


@dataclass(frozen=True)
class CallbackRef:
    """A button press: the query to acknowledge and the message it came from."""

    callback_id: str
    message: MessageRef
