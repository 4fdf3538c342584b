"""Telegram command and callback handlers."""

import asyncio
import logging

from telegram import Update
from telegram.ext import ApplicationHandlerStop, ContextTypes

from .adapters.todoist_api import TodoistError
from .core.rendering import render_tasks
from .ports.chat_gateway import CallbackRef, MessageRef

logger = logging.getLogger(__name__)

UNAUTHORIZED_MSG = "Unauthorized"
DEFAULT_ERROR_MSG = "Something went wrong. Please try again later."
FETCH_FAILED_MSG = "Failed to fetch tasks from Todoist. Please try again later."

# bot_data keys, filled in by create_application
SERVICE = "service"
DIALOG = "dialog"
AUTH_FILTER = "auth_filter"


# ============== Guards ==============


async def auth_guard(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Runs before every other handler; stops updates from foreign chats."""
    auth_filter = context.bot_data[AUTH_FILTER]
    if auth_filter.check_update(update):
        return

    chat = update.effective_chat
    logger.warning(
        f"Unauthorized chat access blocked: chat_id={chat.id if chat else None} "
        f"allowed_chat_id={auth_filter.allowed_chat_id}"
    )
    if update.callback_query:
        await update.callback_query.answer(UNAUTHORIZED_MSG, show_alert=True)
    elif update.effective_message:
        await update.effective_message.reply_text(UNAUTHORIZED_MSG)
    raise ApplicationHandlerStop


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log any exception escaping a handler and tell the user something broke."""
    command = ""
    if isinstance(update, Update) and update.effective_message and update.effective_message.text:
        text = update.effective_message.text
        if text.startswith("/"):
            command = f" command={text.split(' ')[0]}"
    logger.error(f"Error while handling update{command}: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_chat:
        try:
            await context.bot.send_message(chat_id=update.effective_chat.id, text=DEFAULT_ERROR_MSG)
        except Exception as e:
            logger.error(f"Failed to send error message: {e}")


# ============== Simple Commands ==============


async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    await update.message.reply_text(
        "Hey! I remind you about today's Todoist tasks.\n\n"
        "Commands:\n"
        "/tasks - Tasks to do now\n"
        "/tomorrow - Tasks due tomorrow\n"
        "/prioritize - Prioritize tomorrow's tasks\n"
        "/help - Show all commands"
    )


async def help_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await update.message.reply_text(
        "Commands\n\n"
        "/tasks - Today's tasks, filtered by priority and time labels\n"
        "/tomorrow - Everything due tomorrow\n"
        "/prioritize - Set priority, time and project for tomorrow's unprioritized tasks\n"
    )


async def tasks_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /tasks command - today's tasks that should be visible now."""
    logger.debug(f"Received /tasks from chat {update.effective_chat.id}")
    service = context.bot_data[SERVICE]
    try:
        tasks = await service.get_today_tasks(filter_by_time=True)
    except (TodoistError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to fetch today's tasks: {e}")
        await update.message.reply_text(FETCH_FAILED_MSG)
        return

    await update.message.reply_text(render_tasks(tasks) or "No tasks for today! 🎉")


async def tomorrow_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /tomorrow command - everything due tomorrow."""
    service = context.bot_data[SERVICE]
    try:
        tasks = await service.get_tomorrow_tasks()
    except (TodoistError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to fetch tomorrow's tasks: {e}")
        await update.message.reply_text(FETCH_FAILED_MSG)
        return

    text = render_tasks(tasks, header="Tasks for tomorrow:")
    await update.message.reply_text(text or "No tasks for tomorrow.")


# ============== Prioritization ==============


async def prioritize_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /prioritize command - start dialogs for tomorrow's tasks."""
    dialog = context.bot_data[DIALOG]
    try:
        sent = await dialog.start(update.effective_chat.id)
    except (TodoistError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to start prioritization: {e}")
        await update.message.reply_text(FETCH_FAILED_MSG)
        return

    if sent == 0:
        await update.message.reply_text("All tomorrow's tasks are already prioritized.")


async def callback_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle inline keyboard presses belonging to the prioritization dialog."""
    query = update.callback_query
    if query is None or query.message is None:
        return

    ref = CallbackRef(
        callback_id=query.id,
        message=MessageRef(chat_id=query.message.chat_id, message_id=query.message.message_id),
    )
    await context.bot_data[DIALOG].handle_callback(query.data or "", ref)
