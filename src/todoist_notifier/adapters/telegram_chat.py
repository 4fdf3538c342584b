"""Telegram adapter - ChatGateway over a python-telegram-bot Bot."""

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup

from todoist_notifier.core.callbacks import Keyboard
from todoist_notifier.ports.chat_gateway import MessageRef

# Telegram rejects messages longer than 4096 characters.
MAX_MESSAGE_LENGTH = 4000


def to_markup(keyboard: Keyboard | None) -> InlineKeyboardMarkup | None:
    """Convert a transport-neutral keyboard into Telegram inline markup."""
    if not keyboard:
        return None
    return InlineKeyboardMarkup(
        [
            [InlineKeyboardButton(b.label, callback_data=b.callback_data) for b in row]
            for row in keyboard
        ]
    )


class TelegramChatGateway:
    """Implements ChatGateway protocol on top of telegram.Bot."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(self, chat_id: int, text: str, keyboard: Keyboard | None = None) -> MessageRef:
        # Split if too long; the keyboard rides on the last chunk.
        chunks = [text[i : i + MAX_MESSAGE_LENGTH] for i in range(0, len(text), MAX_MESSAGE_LENGTH)] or [text]
        message = None
        for i, chunk in enumerate(chunks):
            markup = to_markup(keyboard) if i == len(chunks) - 1 else None
            message = await self.bot.send_message(chat_id=chat_id, text=chunk, reply_markup=markup)
        return MessageRef(chat_id=message.chat_id, message_id=message.message_id)

    async def edit_message(self, ref: MessageRef, text: str, keyboard: Keyboard | None = None) -> None:
        await self.bot.edit_message_text(
            text=text,
            chat_id=ref.chat_id,
            message_id=ref.message_id,
            reply_markup=to_markup(keyboard),
        )

    async def answer_callback(self, callback_id: str, alert: str | None = None) -> None:
        await self.bot.answer_callback_query(
            callback_query_id=callback_id,
            text=alert,
            show_alert=alert is not None,
        )
