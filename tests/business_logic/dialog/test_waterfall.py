from __future__ import annotations

from typing import Any, List

import pytest

from business_logic.dialog import (
    ComponentDialog,
    ConversationState,
    DialogContext,
    DialogError,
    DialogNotFoundError,
    DialogSet,
    DialogState,
    DialogTurnResult,
    DialogTurnStatus,
    PromptOptions,
    TextPrompt,
    TurnContext,
    WaterfallDialog,
    WaterfallStepContext,
    WaterfallStepError,
)
from foundational_service.persist import MemoryStorage


class DialogHarness:
    def __init__(self, *dialogs, root_id: str, options: Any = None) -> None:
        self.conversation_state = ConversationState(MemoryStorage())
        self.dialogs = DialogSet(self.conversation_state.create_property("DialogState"))
        for dialog in dialogs:
            self.dialogs.add(dialog)
        self.root_id = root_id
        self.options = options
        self.results: List[DialogTurnResult] = []

    async def __call__(self, context: TurnContext) -> None:
        dialog_context = await self.dialogs.create_context(context)
        result = await dialog_context.continue_dialog()
        if result.status == DialogTurnStatus.EMPTY:
            result = await dialog_context.begin_dialog(self.root_id, self.options)
        self.results.append(result)
        await self.conversation_state.save_changes(context)


async def ask_name(step: WaterfallStepContext) -> DialogTurnResult:
    step.values["asked"] = True
    return await step.prompt("text", PromptOptions(prompt="Name?"))


async def shout(step: WaterfallStepContext) -> DialogTurnResult:
    step.values["name"] = step.result
    return await step.next(step.result.upper())


async def finish(step: WaterfallStepContext) -> DialogTurnResult:
    return await step.end_dialog({"name": step.values["name"], "upper": step.result, "asked": step.values["asked"]})


@pytest.mark.asyncio
async def test_waterfall_suspends_on_prompt_and_resumes_next_turn(adapter) -> None:
    harness = DialogHarness(TextPrompt("text"), WaterfallDialog("wf", [ask_name, shout, finish]), root_id="wf")

    await adapter.send("hi", harness)
    assert adapter.take_texts() == ["Name?"]
    assert harness.results[-1].status == DialogTurnStatus.WAITING

    await adapter.send("ada", harness)
    assert adapter.take_texts() == []
    assert harness.results[-1].status == DialogTurnStatus.COMPLETE
    assert harness.results[-1].result == {"name": "ada", "upper": "ADA", "asked": True}

    await adapter.send("again", harness)
    assert adapter.take_texts() == ["Name?"]


@pytest.mark.asyncio
async def test_step_options_are_passed_through(adapter) -> None:
    seen: List[Any] = []

    async def capture(step: WaterfallStepContext) -> DialogTurnResult:
        seen.append((step.options, step.index))
        return await step.end_dialog(step.options["value"])

    harness = DialogHarness(WaterfallDialog("wf", [capture]), root_id="wf", options={"value": 7})
    await adapter.send("go", harness)

    assert seen == [({"value": 7}, 0)]
    assert harness.results[-1].result == 7


@pytest.mark.asyncio
async def test_step_returning_nothing_is_an_error(adapter) -> None:
    async def broken(step: WaterfallStepContext):
        return None

    harness = DialogHarness(WaterfallDialog("wf", [broken]), root_id="wf")

    with pytest.raises(WaterfallStepError):
        await adapter.send("go", harness)


@pytest.mark.asyncio
async def test_next_cannot_be_called_twice(adapter) -> None:
    async def twice(step: WaterfallStepContext) -> DialogTurnResult:
        await step.next("first")
        return await step.next("second")

    async def done(step: WaterfallStepContext) -> DialogTurnResult:
        return await step.end_dialog(step.result)

    harness = DialogHarness(WaterfallDialog("wf", [twice, done]), root_id="wf")

    with pytest.raises(DialogError):
        await adapter.send("go", harness)


@pytest.mark.asyncio
async def test_unknown_dialog_id_raises(adapter) -> None:
    harness = DialogHarness(WaterfallDialog("wf", [ask_name]), root_id="missing")

    with pytest.raises(DialogNotFoundError):
        await adapter.send("go", harness)


@pytest.mark.asyncio
async def test_cancel_all_dialogs_empties_the_stack(adapter) -> None:
    harness = DialogHarness(TextPrompt("text"), WaterfallDialog("wf", [ask_name, shout, finish]), root_id="wf")
    await adapter.send("hi", harness)

    context = TurnContext(adapter, adapter.make_activity("stop"))
    dialog_context = await harness.dialogs.create_context(context)
    assert dialog_context.active_dialog.id == "text"

    result = await dialog_context.cancel_all_dialogs()

    assert result.status == DialogTurnStatus.CANCELLED
    assert dialog_context.active_dialog is None


def test_dialog_set_rejects_a_different_dialog_with_the_same_id() -> None:
    dialogs = DialogSet()
    dialogs.add(TextPrompt("text"))

    with pytest.raises(DialogError):
        dialogs.add(TextPrompt("text"))


@pytest.mark.asyncio
async def test_component_without_an_active_instance_raises_dialog_error(adapter) -> None:
    component = ComponentDialog("component")
    component.add_dialog(WaterfallDialog("inner", []))
    dialog_context = DialogContext(DialogSet(), TurnContext(adapter, adapter.make_activity("hi")), DialogState())

    with pytest.raises(DialogError, match="begin_dialog"):
        await component.begin_dialog(dialog_context)
    with pytest.raises(DialogError, match="continue_dialog"):
        await component.continue_dialog(dialog_context)
