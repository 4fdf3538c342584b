"""Todoist notifier Telegram bot."""

import logging

from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    TypeHandler,
    filters,
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .adapters.telegram_chat import TelegramChatGateway
from .adapters.todoist_api import TodoistAdapter
from .config import Config, load_config
from .core.callbacks import is_dialog_callback
from .core.clock import ZonedClock
from .core.prioritization import StateStore
from .core.rendering import render_tasks
from .ports.chat_gateway import ChatGateway
from .prioritize import PrioritizationDialog
from .telegram_handlers import (
    AUTH_FILTER,
    DIALOG,
    SERVICE,
    auth_guard,
    callback_handler,
    error_handler,
    help_handler,
    prioritize_handler,
    start_handler,
    tasks_handler,
    tomorrow_handler,
)
from .workflows import TaskService

logger = logging.getLogger(__name__)

SCHEDULED_TIMEOUT = 60.0


class AuthFilter(filters.BaseFilter):
    """Filter to only allow the configured chat."""

    def __init__(self, allowed_chat_id: int):
        super().__init__()
        self.allowed_chat_id = allowed_chat_id

    def check_update(self, update: Update) -> bool:
        chat = update.effective_chat
        if chat is None:
            return False
        return chat.id == self.allowed_chat_id


def create_application(config: Config | None = None, repo=None) -> Application:
    """Create and configure the Telegram bot application."""
    if config is None:
        config = load_config()
    config.validate()

    # Handlers run as concurrent asyncio tasks
    app = Application.builder().token(config.telegram_bot_token).concurrent_updates(True).build()

    clock = ZonedClock(config.timezone)
    service = TaskService(
        repo or TodoistAdapter(config),
        clock,
        project_cache_ttl=config.project_cache_ttl,
    )
    gateway = TelegramChatGateway(app.bot)
    auth_filter = AuthFilter(config.telegram_chat_id)

    app.bot_data[SERVICE] = service
    app.bot_data[DIALOG] = PrioritizationDialog(service, gateway, StateStore(clock), clock)
    app.bot_data[AUTH_FILTER] = auth_filter

    # Every update passes the chat guard first
    app.add_handler(TypeHandler(Update, auth_guard), group=-1)

    app.add_handler(CommandHandler("start", start_handler, filters=auth_filter))
    app.add_handler(CommandHandler("help", help_handler, filters=auth_filter))
    app.add_handler(CommandHandler("tasks", tasks_handler, filters=auth_filter))
    app.add_handler(CommandHandler("tomorrow", tomorrow_handler, filters=auth_filter))
    app.add_handler(CommandHandler("prioritize", prioritize_handler, filters=auth_filter))
    app.add_handler(CallbackQueryHandler(callback_handler, pattern=is_dialog_callback))

    app.add_error_handler(error_handler)

    return app


def setup_scheduler(app: Application, config: Config | None = None) -> AsyncIOScheduler:
    """Set up scheduled reminders and the nightly prioritization prompt."""
    if config is None:
        config = load_config()

    scheduler = AsyncIOScheduler(timezone=config.timezone)
    service = app.bot_data[SERVICE]
    gateway = TelegramChatGateway(app.bot)

    scheduler.add_job(
        send_today_tasks,
        CronTrigger.from_crontab(config.schedule, timezone=config.timezone),
        args=[service, gateway, config.telegram_chat_id],
        id="today_tasks",
    )
    logger.info(f"Scheduled task reminders with cron '{config.schedule}' ({config.timezone})")

    if config.prioritize_time:
        try:
            hour, minute = map(int, config.prioritize_time.split(":"))
            scheduler.add_job(
                send_scheduled_prioritization,
                CronTrigger(hour=hour, minute=minute, timezone=config.timezone),
                args=[app.bot_data[DIALOG], config.telegram_chat_id],
                id="prioritize",
            )
            logger.info(f"Scheduled prioritization at {hour:02d}:{minute:02d}")
        except ValueError:
            logger.warning(f"Invalid prioritize time format: {config.prioritize_time}")

    return scheduler


async def send_today_tasks(
    service: TaskService,
    chat: ChatGateway,
    chat_id: int,
    notify_if_empty: bool = False,
) -> bool:
    """Send today's visible tasks. Returns whether a message was sent."""
    logger.info("Sending task reminder")
    try:
        tasks = await service.get_today_tasks(filter_by_time=True, timeout=SCHEDULED_TIMEOUT)
        text = render_tasks(tasks)
        if not text:
            if not notify_if_empty:
                logger.debug("No tasks to send")
                return False
            text = "No tasks for today! 🎉"
        await chat.send_message(chat_id, text)
    except Exception as e:
        logger.error(f"Failed to send task reminder: {e}")
        return False

    logger.info("Task reminder sent")
    return True


async def send_scheduled_prioritization(dialog: PrioritizationDialog, chat_id: int):
    """Start prioritization dialogs from the scheduler."""
    try:
        sent = await dialog.start(chat_id)
        logger.info(f"Scheduled prioritization sent {sent} prompt(s)")
    except Exception as e:
        logger.error(f"Scheduled prioritization failed: {e}")


def run_bot(config: Config | None = None):
    """Run the Telegram bot."""
    if config is None:
        config = load_config()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if config.dev else logging.INFO,
    )
    # httpx logs every long-poll request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    app = create_application(config)
    scheduler = setup_scheduler(app, config)

    async def post_init(application: Application) -> None:
        """Start scheduler after event loop is running."""
        scheduler.start()
        logger.info("Scheduler started")

    async def post_shutdown(application: Application) -> None:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    app.post_init = post_init
    app.post_shutdown = post_shutdown

    logger.info(f"Bot authorized for chat: {config.telegram_chat_id}")
    logger.info("Starting Todoist notifier bot...")

    app.run_polling(allowed_updates=Update.ALL_TYPES)
