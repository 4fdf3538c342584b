"""Todoist notifier CLI."""

import asyncio
import json
import sys

import click
from telegram import Bot

from .adapters.telegram_chat import TelegramChatGateway
from .adapters.todoist_api import AuthenticationError, TodoistAdapter, TodoistError
from .config import ConfigError, load_config
from .core.clock import ZonedClock
from .core.rendering import priority_glyph
from .core.tasks import filter_today, filter_tomorrow
from .telegram_bot import run_bot, send_today_tasks
from .workflows import TaskService


def _adapter(config) -> TodoistAdapter:
    try:
        return TodoistAdapter(config)
    except AuthenticationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option()
def main():
    """Todoist notifier - task reminders in Telegram."""
    pass


@main.command()
def bot():
    """Run the Telegram bot with scheduled reminders."""
    config = load_config()
    try:
        config.validate()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    run_bot(config)


@main.command()
@click.option("--always", is_flag=True, help="Send a message even when there is nothing to do")
def notify(always: bool):
    """Send today's reminder once and exit."""
    config = load_config()
    try:
        config.validate()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    service = TaskService(_adapter(config), ZonedClock(config.timezone))

    async def _send() -> bool:
        async with Bot(config.telegram_bot_token) as telegram_bot:
            gateway = TelegramChatGateway(telegram_bot)
            return await send_today_tasks(service, gateway, config.telegram_chat_id, notify_if_empty=always)

    sent = asyncio.run(_send())
    click.echo("Reminder sent." if sent else "Nothing sent.")


@main.command()
@click.option("--tomorrow", is_flag=True, help="Show tasks due tomorrow")
@click.option("--all", "show_all", is_flag=True, help="Skip priority/time gating")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tasks(tomorrow: bool, show_all: bool, as_json: bool):
    """List the tasks the bot would remind about now."""
    config = load_config()
    adapter = _adapter(config)
    now = ZonedClock(config.timezone).now()

    try:
        all_tasks = adapter.fetch_tasks()
    except TodoistError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if tomorrow:
        selected = filter_tomorrow(all_tasks, now)
    else:
        selected = filter_today(all_tasks, now, filter_by_time=not show_all)

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "id": t.id,
                        "content": t.content,
                        "priority": int(t.priority),
                        "due_date": t.due_date.isoformat() if t.due_date else None,
                        "project_id": t.project_id,
                        "labels": t.labels,
                    }
                    for t in selected
                ],
                indent=2,
            )
        )
        return

    if not selected:
        click.echo("No tasks.")
        return

    for task in selected:
        labels = f" [{', '.join(task.labels)}]" if task.labels else ""
        click.echo(f"{priority_glyph(task.priority)} {task.content}{labels}")


@main.command()
def projects():
    """List Todoist projects."""
    config = load_config()
    adapter = _adapter(config)
    try:
        for project in adapter.fetch_projects():
            click.echo(f"{project.id:>12}  {project.name}")
    except TodoistError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
