from __future__ import annotations

from typing import Any, List

import pytest

from business_logic.dialog import ConversationState, TurnContext, UserState
from business_service.access import AccessRequestDialog, DialogBot, MainDialog, build_turn_error_handler
from business_service.access.bot import ERROR_FOLLOW_UP_MESSAGE, ERROR_MESSAGE
from foundational_service.contracts.activity import ActivityTypes
from foundational_service.persist import MemoryStorage


class UnconfiguredRecognizer:
    is_configured = False


class ExplodingDialog:
    id = "exploding"

    async def run(self, turn_context: TurnContext, accessor: Any) -> None:
        await accessor.set(turn_context, {"touched": True})
        raise RuntimeError("boom")


class RecordingStorage(MemoryStorage):
    def __init__(self) -> None:
        super().__init__()
        self.writes: List[List[str]] = []

    async def write(self, changes) -> None:
        self.writes.append(sorted(changes))
        await super().write(changes)


def test_bot_requires_collaborators() -> None:
    storage = MemoryStorage()
    with pytest.raises(ValueError):
        DialogBot(None, UserState(storage), MainDialog(UnconfiguredRecognizer(), AccessRequestDialog()))  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        DialogBot(ConversationState(storage), None, MainDialog(UnconfiguredRecognizer(), AccessRequestDialog()))  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        DialogBot(ConversationState(storage), UserState(storage), None)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_message_turn_persists_dialog_state(adapter) -> None:
    storage = RecordingStorage()
    bot = DialogBot(ConversationState(storage), UserState(storage), MainDialog(UnconfiguredRecognizer(), AccessRequestDialog()))

    await adapter.send("hi", bot)

    assert storage.writes == [["test/conversations/conv-1"]]
    document = (await storage.read(["test/conversations/conv-1"]))["test/conversations/conv-1"]
    assert document["DialogState"]["dialog_stack"][0]["id"] == "MainDialog"


@pytest.mark.asyncio
async def test_non_message_activities_do_not_run_the_dialog(adapter) -> None:
    storage = RecordingStorage()
    bot = DialogBot(ConversationState(storage), UserState(storage), MainDialog(UnconfiguredRecognizer(), AccessRequestDialog()))

    await adapter.send(None, bot, activity_type=ActivityTypes.CONVERSATION_UPDATE)

    assert adapter.sent == []
    assert storage.writes == []


@pytest.mark.asyncio
async def test_failed_turn_reports_error_and_skips_saving(adapter) -> None:
    storage = RecordingStorage()
    adapter.on_turn_error = build_turn_error_handler()
    bot = DialogBot(ConversationState(storage), UserState(storage), ExplodingDialog())  # type: ignore[arg-type]

    await adapter.send("hi", bot)

    assert adapter.texts() == [ERROR_MESSAGE, ERROR_FOLLOW_UP_MESSAGE]
    assert all(activity.type != ActivityTypes.TRACE for activity in adapter.sent)
    assert storage.writes == []


@pytest.mark.asyncio
async def test_error_handler_sends_trace_on_emulator(adapter) -> None:
    adapter.reference.channel_id = "emulator"
    handler = build_turn_error_handler()
    context = TurnContext(adapter, adapter.make_activity("hi"))

    await handler(context, ValueError("bad input"))

    assert [activity.type for activity in adapter.sent] == [
        ActivityTypes.TRACE,
        ActivityTypes.MESSAGE,
        ActivityTypes.MESSAGE,
    ]
    trace = adapter.sent[0]
    assert trace.name == "OnTurnError Trace"
    assert trace.value == "bad input"
    assert trace.label == "TurnError"
