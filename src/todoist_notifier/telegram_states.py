"""Conversation states for Telegram bot."""

from enum import IntEnum, auto


class PrioritizationStep(IntEnum):
    """Steps of the per-task prioritization dialog, in order."""

    AWAITING_PRIORITY = auto()
    AWAITING_TIME_LABEL = auto()
    AWAITING_PROJECT_DECISION = auto()
    AWAITING_PROJECT_CHOICE = auto()
    FINALIZED = auto()
