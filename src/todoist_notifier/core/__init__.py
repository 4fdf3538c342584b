"""Functional core - pure business logic with no I/O."""

from .clock import Clock, ZonedClock
from .tasks import (
    Priority,
    Project,
    Task,
    filter_today,
    filter_tomorrow,
    filter_unprioritized,
    should_show_task,
    sort_tasks,
)
from .rendering import priority_glyph, render_tasks
from .prioritization import PrioritizationState, StateStore

__all__ = [
    # Clock
    "Clock",
    "ZonedClock",
    # Tasks
    "Priority",
    "Project",
    "Task",
    "filter_today",
    "filter_tomorrow",
    "filter_unprioritized",
    "should_show_task",
    "sort_tasks",
    # Rendering
    "priority_glyph",
    "render_tasks",
    # Prioritization
    "PrioritizationState",
    "StateStore",
]
