from __future__ import annotations

from typing import Any, List

import pytest

from business_logic.dialog import (
    ConversationState,
    DialogSet,
    DialogTurnResult,
    DialogTurnStatus,
    FoundChoice,
    TurnContext,
)
from business_service.access import AccessRequestDialog, RequestContext, RequestType
from business_service.access.models import PROJECT_ID_PROMPT, REQUEST_TYPE_PROMPT, VERIFYING_MESSAGE
from foundational_service.contracts.activity import InputHints
from foundational_service.persist import MemoryStorage


class AccessHarness:
    def __init__(self, options: Any = None) -> None:
        self.dialog = AccessRequestDialog()
        self.conversation_state = ConversationState(MemoryStorage())
        self.dialogs = DialogSet(self.conversation_state.create_property("DialogState")).add(self.dialog)
        self.options = options
        self.results: List[DialogTurnResult] = []

    async def __call__(self, context: TurnContext) -> None:
        dialog_context = await self.dialogs.create_context(context)
        result = await dialog_context.continue_dialog()
        if result.status == DialogTurnStatus.EMPTY:
            result = await dialog_context.begin_dialog(self.dialog.id, self.options)
        self.results.append(result)
        await self.conversation_state.save_changes(context)


class FakeStep:
    """Stands in for a waterfall step context when a single step is exercised directly."""

    def __init__(self, context: TurnContext, options: Any, result: Any) -> None:
        self.context = context
        self.options = options
        self.result = result
        self.next_result: Any = "unset"
        self.ended_with: Any = "unset"

    async def next(self, result: Any = None) -> DialogTurnResult:
        self.next_result = result
        return DialogTurnResult(DialogTurnStatus.WAITING)

    async def end_dialog(self, result: Any = None) -> DialogTurnResult:
        self.ended_with = result
        return DialogTurnResult(DialogTurnStatus.COMPLETE, result)


@pytest.mark.asyncio
async def test_collects_project_id_and_request_type(adapter) -> None:
    harness = AccessHarness(RequestContext())

    await adapter.send("hello", harness)
    assert adapter.texts() == [PROJECT_ID_PROMPT]
    assert adapter.sent[0].input_hint == InputHints.EXPECTING_INPUT
    adapter.sent.clear()

    await adapter.send("PRJ-42", harness)
    texts = adapter.take_texts()
    assert len(texts) == 1
    assert texts[0].startswith(REQUEST_TYPE_PROMPT)
    assert "(2) Tracker" in texts[0]

    await adapter.send("tracker", harness)
    assert adapter.take_texts() == ["Testing ACCESS_TRACKER", VERIFYING_MESSAGE]

    result = harness.results[-1]
    assert result.status == DialogTurnStatus.COMPLETE
    assert result.result == RequestContext(cust_project_id="PRJ-42", request_type=RequestType.ACCESS_TRACKER)
    assert result.result.to_dict() == {"cust_project_id": "PRJ-42", "request_type": "Tracker"}


@pytest.mark.asyncio
async def test_existing_project_id_skips_the_prompt(adapter) -> None:
    harness = AccessHarness(RequestContext(cust_project_id="PRJ-7"))

    await adapter.send("hello", harness)

    texts = adapter.take_texts()
    assert PROJECT_ID_PROMPT not in texts
    assert texts[0].startswith(REQUEST_TYPE_PROMPT)

    await adapter.send("revalidation", harness)
    assert harness.results[-1].result.cust_project_id == "PRJ-7"


@pytest.mark.asyncio
async def test_prefilled_context_completes_without_prompting(adapter) -> None:
    harness = AccessHarness(RequestContext(cust_project_id="PRJ-9", request_type=RequestType.REPORT_STATUS))

    await adapter.send("hello", harness)

    assert adapter.texts() == ["Testing REPORT_STATUS", VERIFYING_MESSAGE]
    assert harness.results[-1].result == RequestContext(cust_project_id="PRJ-9", request_type=RequestType.REPORT_STATUS)


@pytest.mark.asyncio
async def test_dict_options_are_accepted(adapter) -> None:
    harness = AccessHarness({"cust_project_id": "PRJ-1", "request_type": "Report"})

    await adapter.send("hello", harness)

    assert adapter.texts() == ["Testing ACCESS_REPORT", VERIFYING_MESSAGE]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("result", "acknowledgement"),
    [
        (FoundChoice(value="Tracker", index=1, score=1.0), "Testing ACCESS_TRACKER"),
        (FoundChoice(value="Report", index=0, score=1.0), "Testing ACCESS_REPORT"),
        (FoundChoice(value="Tracker Status", index=3, score=1.0), "Testing TRACKER_STATUS"),
        ("Report Status", "Testing REPORT_STATUS"),
        (RequestType.REQUEST_REVALIDATION, "Testing REQUEST_REVALIDATION"),
    ],
)
async def test_each_request_type_sends_one_acknowledgement(adapter, result: Any, acknowledgement: str) -> None:
    context = TurnContext(adapter, adapter.make_activity("x"))
    request_context = RequestContext(cust_project_id="PRJ-1")
    step = FakeStep(context, request_context, result)

    await AccessRequestDialog().parse_request_type_step(step)  # type: ignore[arg-type]

    assert adapter.texts() == [acknowledgement, VERIFYING_MESSAGE]
    assert isinstance(request_context.request_type, RequestType)
    assert step.next_result is result


@pytest.mark.asyncio
async def test_unknown_request_type_only_sends_verification(adapter) -> None:
    context = TurnContext(adapter, adapter.make_activity("x"))
    request_context = RequestContext(cust_project_id="PRJ-1")
    step = FakeStep(context, request_context, "Parking")

    await AccessRequestDialog().parse_request_type_step(step)  # type: ignore[arg-type]

    assert adapter.texts() == [VERIFYING_MESSAGE]
    assert request_context.request_type == "Parking"
    assert step.next_result == "Parking"


@pytest.mark.asyncio
@pytest.mark.parametrize("falsy", [None, "", 0])
async def test_final_step_with_falsy_result_returns_no_value(adapter, falsy: Any) -> None:
    context = TurnContext(adapter, adapter.make_activity("x"))
    step = FakeStep(context, RequestContext(cust_project_id="PRJ-1"), falsy)

    result = await AccessRequestDialog().final_step(step)  # type: ignore[arg-type]

    assert result.result is None
    assert step.ended_with is None


@pytest.mark.asyncio
async def test_final_step_with_result_returns_context_unchanged(adapter) -> None:
    context = TurnContext(adapter, adapter.make_activity("x"))
    request_context = RequestContext(cust_project_id="PRJ-1", request_type=RequestType.ACCESS_REPORT)
    step = FakeStep(context, request_context, FoundChoice(value="Report", index=0, score=1.0))

    result = await AccessRequestDialog().final_step(step)  # type: ignore[arg-type]

    assert result.result is request_context