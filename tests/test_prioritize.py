"""Tests for the interactive prioritization dialog."""

import asyncio

import pytest

from conftest import FakeChat, FakeRepo, callback_ref, make_task
from todoist_notifier.core.prioritization import StateStore
from todoist_notifier.core.tasks import Priority, Project
from todoist_notifier.prioritize import (
    INVALID_DATA_MSG,
    PROJECTS_FAILED_MSG,
    STALE_STEP_MSG,
    STATE_EXPIRED_MSG,
    UPDATE_FAILED_MSG,
    PrioritizationDialog,
    project_list_keyboard,
)
from todoist_notifier.telegram_states import PrioritizationStep
from todoist_notifier.workflows import TaskService

CHAT_ID = 42


@pytest.fixture
def repo(tomorrow):
    return FakeRepo(
        tasks=[
            make_task(id="T", content="Renew passport", due_date=tomorrow, project_id="p1", labels=["errand"]),
            make_task(id="done", content="Already P1", priority=Priority.P1, due_date=tomorrow),
        ],
        projects=[Project("pA", "Home"), Project("pB", "Work"), Project("pC", "Errands")],
    )


@pytest.fixture
def chat():
    return FakeChat()


@pytest.fixture
def store(clock):
    return StateStore(clock)


@pytest.fixture
def dialog(repo, chat, store, clock):
    return PrioritizationDialog(TaskService(repo, clock), chat, store, clock)


def buttons(keyboard) -> dict[str, str]:
    """Button label -> callback data."""
    return {b.label: b.callback_data for row in keyboard for b in row}


class TestStart:
    @pytest.mark.asyncio
    async def test_sends_intro_and_one_prompt_per_task(self, dialog, chat, store):
        sent = await dialog.start(CHAT_ID)

        assert sent == 1
        assert chat.sent[0] == (CHAT_ID, "Found 1 task(s) for tomorrow that need prioritization:", None)
        _, text, keyboard = chat.sent[1]
        assert text == "📋 Task: Renew passport\n\nSelect priority:"
        assert buttons(keyboard) == {
            "🔴 P1": "prio|priority|T|4",
            "🟠 P2": "prio|priority|T|3",
            "🔵 P3": "prio|priority|T|2",
            "⚪ P4": "prio|priority|T|1",
        }
        assert store.get("T").step == PrioritizationStep.AWAITING_PRIORITY

    @pytest.mark.asyncio
    async def test_nothing_to_prioritize(self, dialog, repo, chat):
        repo.tasks = []
        assert await dialog.start(CHAT_ID) == 0
        assert chat.sent == []

    @pytest.mark.asyncio
    async def test_failed_prompt_does_not_abort_batch(self, dialog, repo, chat, tomorrow):
        repo.tasks.append(make_task(id="B", content="Broken", due_date=tomorrow, project_id="p0"))
        chat.fail_sends_containing = "Broken"

        sent = await dialog.start(CHAT_ID)

        assert sent == 1
        assert "Renew passport" in chat.sent[-1][1]

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self, dialog, repo):
        repo.fail_fetch = True
        with pytest.raises(RuntimeError):
            await dialog.start(CHAT_ID)


class TestFullDialog:
    @pytest.mark.asyncio
    async def test_p1_with_12pm_no_move(self, dialog, repo, chat, store):
        await dialog.start(CHAT_ID)
        ref = callback_ref()

        await dialog.handle_callback("prio|priority|T|4", ref)
        assert store.get("T").step == PrioritizationStep.AWAITING_TIME_LABEL
        _, text, keyboard = chat.last_edit
        assert text == "📋 Task: Renew passport\nPriority: 🔴\n\nSelect time:"
        assert buttons(keyboard) == {"🕛 12PM": "prio|time|T|12pm", "⏭️ None": "prio|time|T|none"}

        await dialog.handle_callback("prio|time|T|12pm", ref)
        _, text, keyboard = chat.last_edit
        assert text == "📋 Task: Renew passport\nPriority: 🔴\nTime: 12pm\n\nMove to project?"
        assert buttons(keyboard) == {"✅ Yes": "prio|project|T|yes", "⏭️ No": "prio|project|T|no"}

        await dialog.handle_callback("prio|project|T|no", ref)

        assert repo.updates == [("T", Priority.P1, ["12pm"])]
        assert repo.moves == []
        assert store.get("T") is None
        _, text, keyboard = chat.last_edit
        assert text == "✅ Task updated successfully!\n\n📋 Task: Renew passport\nPriority: 🔴\nTime: 12pm"
        assert keyboard is None
        assert all(alert is None for _, alert in chat.answers)

    @pytest.mark.asyncio
    async def test_p4_offers_9pm(self, dialog, chat):
        await dialog.start(CHAT_ID)
        await dialog.handle_callback("prio|priority|T|1", callback_ref())
        assert set(buttons(chat.last_edit[2])) == {"🕘 9PM", "⏭️ None"}

    @pytest.mark.parametrize("priority", [Priority.P2, Priority.P3])
    @pytest.mark.asyncio
    async def test_p2_p3_skip_time_label(self, dialog, chat, store, priority):
        await dialog.start(CHAT_ID)
        await dialog.handle_callback(f"prio|priority|T|{int(priority)}", callback_ref())

        assert store.get("T").step == PrioritizationStep.AWAITING_PROJECT_DECISION
        text = chat.last_edit[1]
        assert text.endswith("Move to project?")
        assert "Time:" not in text

    @pytest.mark.asyncio
    async def test_time_none_drops_all_labels(self, dialog, repo, chat):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|4", ref)
        await dialog.handle_callback("prio|time|T|none", ref)
        assert "Time: None" in chat.last_edit[1]

        await dialog.handle_callback("prio|project|T|no", ref)

        # original "errand" label is not carried over
        assert repo.updates == [("T", Priority.P1, [])]
        assert "Time:" not in chat.last_edit[1]

    @pytest.mark.asyncio
    async def test_move_to_selected_project(self, dialog, repo, chat, store):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|3", ref)
        await dialog.handle_callback("prio|project|T|yes", ref)

        assert store.get("T").step == PrioritizationStep.AWAITING_PROJECT_CHOICE
        _, text, keyboard = chat.last_edit
        assert text.endswith("Select project:")
        assert [[b.label for b in row] for row in keyboard] == [["Home", "Work"], ["Errands"], ["⏭️ Keep Current"]]

        await dialog.handle_callback("prio|project_select|T|pB", ref)

        assert repo.updates == [("T", Priority.P2, [])]
        assert repo.moves == [("T", "pB")]
        assert store.get("T") is None

    @pytest.mark.asyncio
    async def test_keep_current_project(self, dialog, repo):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|2", ref)
        await dialog.handle_callback("prio|project|T|yes", ref)
        await dialog.handle_callback("prio|project_select|T|current", ref)

        assert repo.updates == [("T", Priority.P3, [])]
        assert repo.moves == []

    @pytest.mark.asyncio
    async def test_projects_are_cached(self, dialog, repo, store, clock, tomorrow):
        repo.tasks.append(make_task(id="U", content="Second", due_date=tomorrow, project_id="p2"))
        await dialog.start(CHAT_ID)
        for task_id in ("T", "U"):
            ref = callback_ref(callback_id=task_id)
            await dialog.handle_callback(f"prio|priority|{task_id}|3", ref)
            await dialog.handle_callback(f"prio|project|{task_id}|yes", ref)

        assert repo.project_fetches == 1


class TestErrors:
    @pytest.mark.asyncio
    async def test_unknown_task(self, dialog, chat, store):
        await dialog.handle_callback("prio|priority|nope|4", callback_ref())

        assert chat.last_alert == STATE_EXPIRED_MSG
        assert chat.edits == []
        assert store.get("nope") is None

    @pytest.mark.asyncio
    async def test_expired_state(self, dialog, chat, store, clock):
        await dialog.start(CHAT_ID)
        clock.advance(hours=25)

        await dialog.handle_callback("prio|priority|T|4", callback_ref())

        assert chat.last_alert == STATE_EXPIRED_MSG
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_expired_mid_dialog(self, dialog, chat, clock):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|3", ref)
        clock.advance(hours=24, minutes=1)

        await dialog.handle_callback("prio|project|T|no", ref)

        assert chat.last_alert == STATE_EXPIRED_MSG

    @pytest.mark.asyncio
    async def test_update_failure_keeps_state_for_retry(self, dialog, repo, chat, store):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|3", ref)

        repo.fail_update = True
        await dialog.handle_callback("prio|project|T|no", ref)
        assert chat.last_alert == UPDATE_FAILED_MSG
        assert store.get("T") is not None

        repo.fail_update = False
        await dialog.handle_callback("prio|project|T|no", ref)
        assert repo.updates == [("T", Priority.P2, [])]
        assert store.get("T") is None

    @pytest.mark.asyncio
    async def test_move_failure_keeps_state(self, dialog, repo, chat, store):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|3", ref)
        await dialog.handle_callback("prio|project|T|yes", ref)

        repo.fail_move = True
        await dialog.handle_callback("prio|project_select|T|pA", ref)

        assert chat.last_alert == UPDATE_FAILED_MSG
        assert store.get("T").step == PrioritizationStep.AWAITING_PROJECT_CHOICE

    @pytest.mark.asyncio
    async def test_project_fetch_failure(self, dialog, repo, chat, store):
        repo.fail_projects = True
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|3", ref)

        await dialog.handle_callback("prio|project|T|yes", ref)

        assert chat.last_alert == PROJECTS_FAILED_MSG
        assert store.get("T").step == PrioritizationStep.AWAITING_PROJECT_DECISION

    @pytest.mark.asyncio
    async def test_stale_button(self, dialog, chat, store):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|4", ref)

        await dialog.handle_callback("prio|priority|T|3", ref)

        assert chat.last_alert == STALE_STEP_MSG
        assert store.get("T").priority == Priority.P1

    @pytest.mark.asyncio
    async def test_failed_edit_allows_same_press_again(self, dialog, chat, store):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        chat.failing_edits = 1

        with pytest.raises(RuntimeError):
            await dialog.handle_callback("prio|priority|T|4", ref)
        assert store.get("T").step == PrioritizationStep.AWAITING_PRIORITY

        await dialog.handle_callback("prio|priority|T|4", ref)

        assert chat.last_alert is None
        assert store.get("T").step == PrioritizationStep.AWAITING_TIME_LABEL
        assert chat.last_edit[1] == "📋 Task: Renew passport\nPriority: 🔴\n\nSelect time:"

    @pytest.mark.asyncio
    async def test_failed_project_list_edit_keeps_decision_step(self, dialog, chat, store):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|3", ref)
        chat.failing_edits = 1

        with pytest.raises(RuntimeError):
            await dialog.handle_callback("prio|project|T|yes", ref)
        assert store.get("T").step == PrioritizationStep.AWAITING_PROJECT_DECISION

        await dialog.handle_callback("prio|project|T|yes", ref)
        assert store.get("T").step == PrioritizationStep.AWAITING_PROJECT_CHOICE

    @pytest.mark.asyncio
    async def test_malformed_priority(self, dialog, chat):
        await dialog.start(CHAT_ID)
        await dialog.handle_callback("prio|priority|T|urgent", callback_ref())
        assert chat.last_alert == "Invalid priority value"

    @pytest.mark.asyncio
    async def test_too_few_parts(self, dialog, chat):
        await dialog.handle_callback("prio|time|T", callback_ref())
        assert chat.last_alert == "Invalid callback data"

    @pytest.mark.asyncio
    async def test_unexpected_time_label(self, dialog, chat, store):
        await dialog.start(CHAT_ID)
        ref = callback_ref()
        await dialog.handle_callback("prio|priority|T|4", ref)

        await dialog.handle_callback("prio|time|T|noon", ref)

        assert chat.last_alert == INVALID_DATA_MSG
        assert store.get("T").step == PrioritizationStep.AWAITING_TIME_LABEL

    @pytest.mark.asyncio
    async def test_foreign_callback_is_acknowledged(self, dialog, chat):
        await dialog.handle_callback("recap_cancel", callback_ref())
        assert chat.answers == [("cb", None)]

    @pytest.mark.asyncio
    async def test_callback_sweeps_expired_states(self, dialog, store, clock):
        await dialog.start(CHAT_ID)
        clock.advance(hours=30)
        await dialog.handle_callback("prio|priority|other|4", callback_ref())
        assert len(store) == 0
        assert store.sweep_expired() == 0


class TestConcurrentDialogs:
    @pytest.mark.asyncio
    async def test_interleaved_dialogs_do_not_interfere(self, dialog, repo, store, tomorrow):
        repo.tasks.append(make_task(id="U", content="Second", due_date=tomorrow, project_id="p2"))
        await dialog.start(CHAT_ID)

        async def run(task_id: str, priority: int, time_arg: str):
            ref = callback_ref(callback_id=task_id)
            await dialog.handle_callback(f"prio|priority|{task_id}|{priority}", ref)
            await dialog.handle_callback(f"prio|time|{task_id}|{time_arg}", ref)
            await dialog.handle_callback(f"prio|project|{task_id}|no", ref)

        await asyncio.gather(run("T", 4, "12pm"), run("U", 1, "9pm"))

        assert sorted(repo.updates) == [("T", Priority.P1, ["12pm"]), ("U", Priority.P4, ["9pm"])]
        assert len(store) == 0


def test_project_list_keyboard_odd_count():
    keyboard = project_list_keyboard("T", [Project("a", "A")])
    assert [[b.callback_data for b in row] for row in keyboard] == [
        ["prio|project_select|T|a"],
        ["prio|project_select|T|current"],
    ]
