"""Interactive prioritization of tomorrow's unprioritized tasks.

Each task gets its own dialog: priority -> time label (P1/P4 only) ->
"move to another project?" -> project choice (only on yes) -> update.
Progress lives in the StateStore keyed by task id; every button press is
a typed event from core.callbacks.
"""

import logging

from .core import callbacks
from .core.callbacks import (
    Button,
    DialogEvent,
    InvalidCallbackData,
    Keyboard,
    PriorityChosen,
    ProjectMoveDecided,
    ProjectSelected,
    TimeLabelChosen,
)
from .core.clock import Clock
from .core.prioritization import PrioritizationState, StateStore
from .core.rendering import render_prompt, render_task_summary
from .core.tasks import TIME_LABEL_HOURS, Priority, Project, Task
from .ports.chat_gateway import CallbackRef, ChatGateway
from .telegram_states import PrioritizationStep
from .workflows import TaskService

logger = logging.getLogger(__name__)

STATE_EXPIRED_MSG = "Task state expired. Please start again."
STALE_STEP_MSG = "This step is no longer active."
INVALID_DATA_MSG = "Invalid callback data"
PROJECTS_FAILED_MSG = "Failed to load projects. Please try again."
UPDATE_FAILED_MSG = "Failed to update task. Please try again."

# Time label offered for each priority that gets a time prompt
TIME_LABEL_CHOICES = {
    Priority.P1: ("🕛 12PM", "12pm"),
    Priority.P4: ("🕘 9PM", "9pm"),
}

EXPECTED_STEP = {
    PriorityChosen: PrioritizationStep.AWAITING_PRIORITY,
    TimeLabelChosen: PrioritizationStep.AWAITING_TIME_LABEL,
    ProjectMoveDecided: PrioritizationStep.AWAITING_PROJECT_DECISION,
    ProjectSelected: PrioritizationStep.AWAITING_PROJECT_CHOICE,
}


# ============== Keyboards ==============


def priority_keyboard(task_id: str) -> Keyboard:
    def button(label: str, priority: Priority) -> Button:
        return Button(label, callbacks.encode_event(PriorityChosen(task_id, priority)))

    return [
        [button("🔴 P1", Priority.P1), button("🟠 P2", Priority.P2)],
        [button("🔵 P3", Priority.P3), button("⚪ P4", Priority.P4)],
    ]


def time_label_keyboard(task_id: str, priority: Priority) -> Keyboard:
    label, time_label = TIME_LABEL_CHOICES[priority]
    return [
        [
            Button(label, callbacks.encode_event(TimeLabelChosen(task_id, time_label))),
            Button("⏭️ None", callbacks.encode_event(TimeLabelChosen(task_id, None))),
        ]
    ]


def project_decision_keyboard(task_id: str) -> Keyboard:
    return [
        [
            Button("✅ Yes", callbacks.encode_event(ProjectMoveDecided(task_id, True))),
            Button("⏭️ No", callbacks.encode_event(ProjectMoveDecided(task_id, False))),
        ]
    ]


def project_list_keyboard(task_id: str, projects: list[Project]) -> Keyboard:
    """Projects two per row, then a "keep current" row."""
    buttons = [
        Button(p.name, callbacks.encode_event(ProjectSelected(task_id, p.id)))
        for p in projects
    ]
    rows = [buttons[i : i + 2] for i in range(0, len(buttons), 2)]
    rows.append([Button("⏭️ Keep Current", callbacks.encode_event(ProjectSelected(task_id, None)))])
    return rows


# ============== Dialog ==============


class PrioritizationDialog:
    """Drives the per-task prioritization state machine."""

    def __init__(self, service: TaskService, chat: ChatGateway, store: StateStore, clock: Clock):
        self.service = service
        self.chat = chat
        self.store = store
        self.clock = clock

    async def start(self, chat_id: int) -> int:
        """
        Offer a priority prompt for each unprioritized task due tomorrow.

        Returns the number of prompts sent. A prompt that fails to send is
        logged and skipped.
        """
        logger.debug("Checking unprioritized tasks for tomorrow")
        tasks = await self.service.get_tomorrow_unprioritized()
        if not tasks:
            logger.info("No unprioritized tasks for tomorrow")
            return 0

        logger.info(f"Found {len(tasks)} unprioritized task(s) for tomorrow")
        await self.chat.send_message(
            chat_id,
            f"Found {len(tasks)} task(s) for tomorrow that need prioritization:",
        )

        sent = 0
        for task in tasks:
            try:
                await self._send_priority_selection(chat_id, task)
                sent += 1
            except Exception as e:
                logger.error(f"Failed to send priority selection for task {task.id}: {e}")
        return sent

    async def _send_priority_selection(self, chat_id: int, task: Task) -> None:
        state = PrioritizationState.for_task(task, self.clock.now())
        self.store.save(task.id, state)
        text = render_prompt(render_task_summary(task.content), "Select priority:")
        await self.chat.send_message(chat_id, text, priority_keyboard(task.id))

    async def handle_callback(self, data: str, ref: CallbackRef) -> None:
        """Entry point for a raw button press."""
        self.store.sweep_expired(self.clock.now())

        try:
            event = callbacks.parse(data)
        except InvalidCallbackData as e:
            logger.warning(f"Rejected callback data {data!r}: {e}")
            await self.chat.answer_callback(ref.callback_id, str(e))
            return

        if event is None:
            await self.chat.answer_callback(ref.callback_id)
            return

        await self.handle_event(event, ref)

    async def handle_event(self, event: DialogEvent, ref: CallbackRef) -> None:
        state = self.store.get(event.task_id)
        if state is None:
            await self.chat.answer_callback(ref.callback_id, STATE_EXPIRED_MSG)
            return

        if state.step != EXPECTED_STEP[type(event)]:
            logger.debug(f"Ignoring {type(event).__name__} for task {event.task_id} at step {state.step.name}")
            await self.chat.answer_callback(ref.callback_id, STALE_STEP_MSG)
            return

        match event:
            case PriorityChosen():
                await self._on_priority(state, event, ref)
            case TimeLabelChosen():
                await self._on_time_label(state, event, ref)
            case ProjectMoveDecided():
                await self._on_project_decision(state, event, ref)
            case ProjectSelected():
                await self._on_project_selected(state, event, ref)

    async def _on_priority(self, state: PrioritizationState, event: PriorityChosen, ref: CallbackRef) -> None:
        state.priority = event.priority
        await self.chat.answer_callback(ref.callback_id)

        if event.priority in TIME_LABEL_CHOICES:
            summary = render_task_summary(state.content, state.priority)
            await self.chat.edit_message(
                ref.message,
                render_prompt(summary, "Select time:"),
                time_label_keyboard(state.task_id, event.priority),
            )
            # Advance only once the new keyboard is on screen
            state.step = PrioritizationStep.AWAITING_TIME_LABEL
            return

        await self._ask_project_decision(state, ref, show_time=False)

    async def _on_time_label(self, state: PrioritizationState, event: TimeLabelChosen, ref: CallbackRef) -> None:
        if event.time_label is not None and event.time_label not in TIME_LABEL_HOURS:
            await self.chat.answer_callback(ref.callback_id, INVALID_DATA_MSG)
            return

        state.time_label = event.time_label
        await self.chat.answer_callback(ref.callback_id)
        await self._ask_project_decision(state, ref, show_time=True)

    async def _ask_project_decision(self, state: PrioritizationState, ref: CallbackRef, show_time: bool) -> None:
        time_label = (state.time_label or "None") if show_time else None
        summary = render_task_summary(state.content, state.priority, time_label)
        await self.chat.edit_message(
            ref.message,
            render_prompt(summary, "Move to project?"),
            project_decision_keyboard(state.task_id),
        )
        state.step = PrioritizationStep.AWAITING_PROJECT_DECISION

    async def _on_project_decision(self, state: PrioritizationState, event: ProjectMoveDecided, ref: CallbackRef) -> None:
        if not event.move:
            await self._finalize(state, ref)
            return

        try:
            projects = await self.service.get_projects()
        except Exception as e:
            logger.error(f"Failed to get projects: {e}")
            await self.chat.answer_callback(ref.callback_id, PROJECTS_FAILED_MSG)
            return

        keyboard = project_list_keyboard(state.task_id, projects)
        await self.chat.answer_callback(ref.callback_id)
        summary = render_task_summary(state.content, state.priority, state.time_label)
        await self.chat.edit_message(ref.message, render_prompt(summary, "Select project:"), keyboard)
        state.step = PrioritizationStep.AWAITING_PROJECT_CHOICE

    async def _on_project_selected(self, state: PrioritizationState, event: ProjectSelected, ref: CallbackRef) -> None:
        if event.project_id is not None:
            state.project_id = event.project_id
        await self._finalize(state, ref)

    async def _finalize(self, state: PrioritizationState, ref: CallbackRef) -> None:
        """Write priority/labels (and project) back; keep the state on failure."""
        # TODO: merge state.original_labels once non-time labels should survive
        labels = state.final_labels()
        try:
            await self.service.update_task(state.task_id, state.priority, labels)
            if state.project_changed:
                await self.service.move_task(state.task_id, state.project_id)
        except Exception as e:
            logger.error(f"Failed to update task {state.task_id}: {e}")
            await self.chat.answer_callback(ref.callback_id, UPDATE_FAILED_MSG)
            return

        state.step = PrioritizationStep.FINALIZED
        self.store.delete(state.task_id)
        await self.chat.answer_callback(ref.callback_id)

        summary = render_task_summary(state.content, state.priority, state.time_label)
        await self.chat.edit_message(ref.message, f"✅ Task updated successfully!\n\n{summary}")
        logger.info(
            f"Task {state.task_id} prioritized: priority={int(state.priority)} "
            f"time_label={state.time_label} project={state.project_id}"
        )
