"""Todoist notifier - task reminders and prioritization over Telegram."""
