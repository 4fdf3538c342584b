"""Plain-text rendering of task lists and prioritization prompts."""

from .tasks import Priority, Task

TASKS_HEADER = "Uncompleted tasks for today:"

PRIORITY_GLYPHS = {
    Priority.P1: "🔴",
    Priority.P2: "🟠",
    Priority.P3: "🔵",
    Priority.P4: "⚪",
}


def priority_glyph(priority: int) -> str:
    """Colored circle for a priority; unknown values get the P4 circle."""
    return PRIORITY_GLYPHS.get(priority, PRIORITY_GLYPHS[Priority.P4])


def render_tasks(tasks: list[Task], header: str = TASKS_HEADER) -> str:
    """
    Render tasks one per line, in the given order.

    Returns "" for an empty list so callers can skip sending.
    """
    if not tasks:
        return ""
    lines = [header]
    lines.extend(f"- {priority_glyph(t.priority)} {t.content}" for t in tasks)
    return "\n".join(lines) + "\n"


def render_task_summary(content: str, priority: int | None = None, time_label: str | None = None) -> str:
    """Task header shared by every prioritization prompt."""
    lines = [f"📋 Task: {content}"]
    if priority is not None:
        lines.append(f"Priority: {priority_glyph(priority)}")
    if time_label:
        lines.append(f"Time: {time_label}")
    return "\n".join(lines)


def render_prompt(summary: str, question: str) -> str:
    return f"{summary}\n\n{question}"
