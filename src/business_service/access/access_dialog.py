from __future__ import annotations

"""Waterfall collecting the project id and request type of an access request."""

import logging
from typing import Any, Optional

from business_logic.dialog import (
    ChoicePrompt,
    ComponentDialog,
    DialogContext,
    DialogTurnResult,
    FoundChoice,
    PromptOptions,
    TextPrompt,
    WaterfallDialog,
    WaterfallStepContext,
)
from business_service.access.models import (
    ACCESS_DIALOG_ID,
    PROJECT_ID_PROMPT,
    REQUEST_TYPE_CHOICES,
    REQUEST_TYPE_PROMPT,
    VERIFYING_MESSAGE,
    RequestContext,
    RequestType,
    acknowledgement_for,
)
from foundational_service.contracts.activity import InputHints, text_activity

__all__ = ["AccessRequestDialog"]

log = logging.getLogger(__name__)

TEXT_PROMPT = "textPrompt"
CHOICE_PROMPT = "choicePrompt"
WATERFALL_DIALOG = "waterfallDialog"


class AccessRequestDialog(ComponentDialog):
    """
    Fill in a `RequestContext`, prompting only for what is missing.

    The dialog ends with the completed context, or with no value when the request type step produced
    nothing usable.
    """

    def __init__(self, dialog_id: Optional[str] = None) -> None:
        super().__init__(dialog_id or ACCESS_DIALOG_ID)
        self.add_dialog(TextPrompt(TEXT_PROMPT))
        self.add_dialog(ChoicePrompt(CHOICE_PROMPT))
        self.add_dialog(
            WaterfallDialog(
                WATERFALL_DIALOG,
                [
                    self.customer_project_id_step,
                    self.request_type_step,
                    self.parse_request_type_step,
                    self.final_step,
                ],
            )
        )
        self.initial_dialog_id = WATERFALL_DIALOG

    async def on_begin_dialog(self, inner_dc: DialogContext, options: Any) -> DialogTurnResult:
        if not isinstance(options, RequestContext):
            options = RequestContext.from_dict(options if isinstance(options, dict) else None)
        return await super().on_begin_dialog(inner_dc, options)

    @staticmethod
    def get_choices():
        return list(REQUEST_TYPE_CHOICES)

    async def customer_project_id_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        context: RequestContext = step_context.options
        if not context.cust_project_id:
            prompt = text_activity(PROJECT_ID_PROMPT, speak=PROJECT_ID_PROMPT, input_hint=InputHints.EXPECTING_INPUT)
            return await step_context.prompt(TEXT_PROMPT, PromptOptions(prompt=prompt))
        return await step_context.next(context.cust_project_id)

    async def request_type_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        context: RequestContext = step_context.options
        context.cust_project_id = step_context.result
        log.debug("access.project_id", extra={"dialog_id": self.id, "step": "request_type"})
        if not context.request_type:
            return await step_context.prompt(
                CHOICE_PROMPT,
                PromptOptions(prompt=REQUEST_TYPE_PROMPT, choices=self.get_choices()),
            )
        return await step_context.next(context.request_type)

    async def parse_request_type_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        context: RequestContext = step_context.options
        result = step_context.result
        value = result.value if isinstance(result, FoundChoice) else result
        request_type = RequestType.parse(value)
        context.request_type = request_type if request_type is not None else value
        log.info(
            "access.request_type",
            extra={"dialog_id": self.id, "request_type": str(getattr(request_type, "name", value))},
        )

        acknowledgement = acknowledgement_for(request_type)
        if acknowledgement is not None:
            await step_context.context.send_activity(acknowledgement)
        await step_context.context.send_activity(VERIFYING_MESSAGE)
        return await step_context.next(result)

    async def final_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        if step_context.result:
            return await step_context.end_dialog(step_context.options)
        return await step_context.end_dialog()
