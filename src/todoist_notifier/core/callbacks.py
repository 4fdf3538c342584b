"""Inline keyboard callback data: wire format and typed events.

Wire format is ``prio|<action>|<task_id>|<arg>``. Raw strings are parsed into
one of the event dataclasses at the transport boundary; the prioritization
dialog only ever sees events.
"""

from dataclasses import dataclass

from .tasks import Priority

CALLBACK_PREFIX = "prio"
SEPARATOR = "|"
# Telegram rejects callback_data longer than 64 bytes.
MAX_CALLBACK_BYTES = 64

ACTION_PRIORITY = "priority"
ACTION_TIME = "time"
ACTION_PROJECT = "project"
ACTION_PROJECT_SELECT = "project_select"

NO_TIME_LABEL = "none"
MOVE_YES = "yes"
MOVE_NO = "no"
KEEP_CURRENT_PROJECT = "current"


class InvalidCallbackData(ValueError):
    """Raised when callback data carries our prefix but cannot be parsed."""

    pass


@dataclass(frozen=True)
class Button:
    """One inline keyboard button."""

    label: str
    callback_data: str


Keyboard = list[list[Button]]


@dataclass(frozen=True)
class PriorityChosen:
    task_id: str
    priority: int


@dataclass(frozen=True)
class TimeLabelChosen:
    task_id: str
    time_label: str | None


@dataclass(frozen=True)
class ProjectMoveDecided:
    task_id: str
    move: bool


@dataclass(frozen=True)
class ProjectSelected:
    task_id: str
    project_id: str | None


DialogEvent = PriorityChosen | TimeLabelChosen | ProjectMoveDecided | ProjectSelected


def encode(action: str, task_id: str, arg: str) -> str:
    """Build callback data for a button."""
    data = SEPARATOR.join([CALLBACK_PREFIX, action, task_id, arg])
    if len(data.encode("utf-8")) > MAX_CALLBACK_BYTES:
        raise ValueError(f"Callback data too long ({len(data)} chars): {data!r}")
    return data


def encode_event(event: DialogEvent) -> str:
    """Inverse of parse() for the four dialog events."""
    match event:
        case PriorityChosen(task_id=task_id, priority=priority):
            return encode(ACTION_PRIORITY, task_id, str(int(priority)))
        case TimeLabelChosen(task_id=task_id, time_label=label):
            return encode(ACTION_TIME, task_id, label or NO_TIME_LABEL)
        case ProjectMoveDecided(task_id=task_id, move=move):
            return encode(ACTION_PROJECT, task_id, MOVE_YES if move else MOVE_NO)
        case ProjectSelected(task_id=task_id, project_id=project_id):
            return encode(ACTION_PROJECT_SELECT, task_id, project_id or KEEP_CURRENT_PROJECT)
    raise TypeError(f"Unknown dialog event: {event!r}")


def is_dialog_callback(data: str | None) -> bool:
    return bool(data) and data.split(SEPARATOR, 1)[0] == CALLBACK_PREFIX


def parse(data: str) -> DialogEvent | None:
    """
    Parse callback data into a dialog event.

    Returns None for data that is not ours (foreign prefix or unknown action).
    Raises InvalidCallbackData for our prefix with missing parts or a bad
    priority value.
    """
    parts = data.split(SEPARATOR)
    if len(parts) < 3 or parts[0] != CALLBACK_PREFIX:
        return None

    action, task_id = parts[1], parts[2]
    if action not in (ACTION_PRIORITY, ACTION_TIME, ACTION_PROJECT, ACTION_PROJECT_SELECT):
        return None
    if len(parts) < 4 or not task_id:
        raise InvalidCallbackData("Invalid callback data")
    arg = parts[3]

    match action:
        case "priority":
            try:
                priority = Priority(int(arg))
            except ValueError:
                raise InvalidCallbackData("Invalid priority value") from None
            return PriorityChosen(task_id, priority)
        case "time":
            return TimeLabelChosen(task_id, None if arg == NO_TIME_LABEL else arg)
        case "project":
            if arg not in (MOVE_YES, MOVE_NO):
                raise InvalidCallbackData("Invalid project decision")
            return ProjectMoveDecided(task_id, arg == MOVE_YES)
        case _:
            return ProjectSelected(task_id, None if arg == KEEP_CURRENT_PROJECT else arg)
