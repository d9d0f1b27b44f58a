from __future__ import annotations

import io
from typing import AsyncIterator, List

import pytest

from business_logic.dialog import TurnContext
from foundational_service.contracts.activity import Activity, ActivityTypes, Attachment
from interface_entry.console import ConsoleAdapter


async def _lines(*items: str) -> AsyncIterator[str]:
    for item in items:
        yield item


def _adapter(**kwargs) -> tuple[ConsoleAdapter, io.StringIO, io.StringIO]:
    output, errors = io.StringIO(), io.StringIO()
    return ConsoleAdapter(output=output, error_output=errors, **kwargs), output, errors


@pytest.mark.asyncio
async def test_each_line_becomes_a_message_turn() -> None:
    adapter, output, _ = _adapter()
    seen: List[Activity] = []

    async def logic(context: TurnContext) -> None:
        seen.append(context.activity)
        await context.send_activity(f"echo: {context.activity.text}")

    await adapter.listen(logic, _lines("hello\n", "again\r\n"))

    assert [activity.id for activity in seen] == ["0", "1"]
    assert [activity.text for activity in seen] == ["hello", "again"]
    first = seen[0]
    assert first.type == ActivityTypes.MESSAGE
    assert first.channel_id == "console"
    assert first.conversation.id == "convo1"
    assert first.from_property.name == "User1"
    assert first.recipient.id == "bot"
    assert output.getvalue().splitlines() == ["echo: hello", "echo: again"]


@pytest.mark.asyncio
async def test_reads_from_a_file_like_stream() -> None:
    adapter, output, _ = _adapter(reference={"channelId": "cli"})
    channels: List[str] = []

    async def logic(context: TurnContext) -> None:
        channels.append(context.activity.channel_id)
        await context.send_activity("ok")

    await adapter.listen(logic, io.StringIO("one\ntwo\n"))

    assert channels == ["cli", "cli"]
    assert output.getvalue().splitlines() == ["ok", "ok"]


@pytest.mark.asyncio
async def test_prints_attachment_counts_and_non_message_types() -> None:
    adapter, output, _ = _adapter()

    async def logic(context: TurnContext) -> None:
        await context.send_activities(
            [
                Activity(type=ActivityTypes.MESSAGE, text="card", attachments=[Attachment(content_type="a")]),
                Activity(
                    type=ActivityTypes.MESSAGE,
                    text="cards",
                    attachments=[Attachment(content_type="a"), Attachment(content_type="b")],
                ),
                Activity(type=ActivityTypes.TYPING),
            ]
        )

    await adapter.listen(logic, _lines("show"))

    assert output.getvalue().splitlines() == ["card (1 attachment)", "cards (2 attachments)", "[typing]"]


@pytest.mark.asyncio
async def test_update_and_delete_are_unsupported() -> None:
    adapter, _, _ = _adapter()
    context = TurnContext(adapter, Activity(type=ActivityTypes.MESSAGE))

    pending_update = adapter.update_activity(context, Activity(id="1"))
    with pytest.raises(NotImplementedError, match="update_activity"):
        await pending_update

    pending_delete = adapter.delete_activity(context, context.activity.get_conversation_reference())
    with pytest.raises(NotImplementedError, match="delete_activity"):
        await pending_delete


@pytest.mark.asyncio
async def test_turn_failures_are_printed_to_error_output() -> None:
    adapter, output, errors = _adapter()

    async def logic(context: TurnContext) -> None:
        raise RuntimeError("dialog exploded")

    await adapter.listen(logic, _lines("hello", "again"))

    assert output.getvalue() == ""
    assert errors.getvalue().splitlines() == ["dialog exploded", "dialog exploded"]


@pytest.mark.asyncio
async def test_turn_error_handler_replaces_error_output() -> None:
    handled: List[str] = []

    async def on_turn_error(context: TurnContext, error: Exception) -> None:
        handled.append(str(error))
        await context.send_activity("sorry")

    adapter, output, errors = _adapter(on_turn_error=on_turn_error)

    async def logic(context: TurnContext) -> None:
        raise RuntimeError("dialog exploded")

    await adapter.listen(logic, _lines("hello"))

    assert handled == ["dialog exploded"]
    assert output.getvalue().splitlines() == ["sorry"]
    assert errors.getvalue() == ""


@pytest.mark.asyncio
async def test_close_stops_listening_before_the_next_line() -> None:
    adapter, output, _ = _adapter()
    seen: List[str] = []

    async def logic(context: TurnContext) -> None:
        seen.append(context.activity.text)
        await context.send_activity(context.activity.text)
        if context.activity.text == "stop":
            adapter.close()

    await adapter.listen(logic, io.StringIO("a\nstop\nb\n"))

    assert seen == ["a", "stop"]
    assert output.getvalue().splitlines() == ["a", "stop"]


@pytest.mark.asyncio
async def test_continue_conversation_runs_logic_on_the_referenced_conversation() -> None:
    adapter, output, _ = _adapter()
    conversations: List[str] = []

    async def logic(context: TurnContext) -> None:
        conversations.append(context.activity.conversation.id)
        await context.send_activity("proactive")

    await adapter.continue_conversation(adapter.reference, logic)

    assert conversations == ["convo1"]
    assert output.getvalue().splitlines() == ["proactive"]
