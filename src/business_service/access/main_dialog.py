from __future__ import annotations

"""Top-level dialog: ask what the user needs, classify it, hand off to the access request dialog."""

import logging
from typing import Any, Mapping, Optional

from business_logic.dialog import (
    ComponentDialog,
    DialogSet,
    DialogTurnResult,
    DialogTurnStatus,
    PromptOptions,
    StatePropertyAccessor,
    TextPrompt,
    TurnContext,
    WaterfallDialog,
    WaterfallStepContext,
)
from business_service.access.access_dialog import AccessRequestDialog
from business_service.access.models import (
    LUIS_NOT_CONFIGURED_MESSAGE,
    MAIN_DIALOG_ID,
    RESTART_MESSAGE,
    REVALIDATION_CONFIRMATION,
    WELCOME_PROMPT,
    RequestContext,
    didnt_understand_message,
)
from business_service.access.recognizer import Recognizer, get_project_id, parse_request_type, top_intent
from foundational_service.contracts.activity import InputHints, text_activity
from project_utility.tracing import trace_span

__all__ = ["MainDialog"]

log = logging.getLogger(__name__)

MAIN_WATERFALL_DIALOG = "mainWaterfallDialog"
TEXT_PROMPT = "TextPrompt"


class MainDialog(ComponentDialog):
    def __init__(
        self,
        luis_recognizer: Optional[Recognizer],
        access_request_dialog: Optional[AccessRequestDialog],
    ) -> None:
        super().__init__(MAIN_DIALOG_ID)
        if luis_recognizer is None:
            raise ValueError("[MainDialog]: Missing parameter 'luis_recognizer' is required")
        if access_request_dialog is None:
            raise ValueError("[MainDialog]: Missing parameter 'access_request_dialog' is required")
        self._luis_recognizer = luis_recognizer
        self._access_dialog_id = access_request_dialog.id

        self.add_dialog(TextPrompt(TEXT_PROMPT))
        self.add_dialog(access_request_dialog)
        self.add_dialog(
            WaterfallDialog(
                MAIN_WATERFALL_DIALOG,
                [self.intro_step, self.act_step, self.final_step],
            )
        )
        self.initial_dialog_id = MAIN_WATERFALL_DIALOG

    async def run(self, turn_context: TurnContext, accessor: StatePropertyAccessor) -> None:
        """Feed the turn to the active dialog, starting this one when nothing is active."""

        dialog_set = DialogSet(accessor)
        dialog_set.add(self)
        dialog_context = await dialog_set.create_context(turn_context)
        async with trace_span("dialog.turn", dialog_id=self.id) as span:
            results = await dialog_context.continue_dialog()
            if results.status == DialogTurnStatus.EMPTY:
                results = await dialog_context.begin_dialog(self.id)
            span.set_attribute("status", results.status.value)

    async def intro_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        if not self._luis_recognizer.is_configured:
            await step_context.context.send_activity(
                LUIS_NOT_CONFIGURED_MESSAGE,
                input_hint=InputHints.IGNORING_INPUT,
            )
            return await step_context.next()

        options = step_context.options
        restart_msg = options.get("restart_msg") if isinstance(options, Mapping) else None
        message_text = restart_msg or WELCOME_PROMPT
        prompt = text_activity(message_text, speak=message_text, input_hint=InputHints.EXPECTING_INPUT)
        return await step_context.prompt(TEXT_PROMPT, PromptOptions(prompt=prompt))

    async def act_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        request_context = RequestContext()

        if not self._luis_recognizer.is_configured:
            return await step_context.begin_dialog(self._access_dialog_id, request_context)

        luis_result = await self._luis_recognizer.execute_luis_query(step_context.context)
        intent = top_intent(luis_result)
        request_type = parse_request_type(luis_result)
        log.info("main.intent", extra={"dialog_id": self.id, "intent": intent})

        if request_type is not None:
            request_context.request_type = request_type
            request_context.cust_project_id = get_project_id(luis_result)
            return await step_context.begin_dialog(self._access_dialog_id, request_context)

        message_text = didnt_understand_message(intent)
        await step_context.context.send_activity(message_text, speak=message_text, input_hint=InputHints.IGNORING_INPUT)
        return await step_context.next()

    async def final_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        result: Any = step_context.result
        if result:
            log.info("main.request_received", extra={"dialog_id": self.id, "status": "confirmed"})
            await step_context.context.send_activity(REVALIDATION_CONFIRMATION)
        return await step_context.replace_dialog(self.initial_dialog_id, {"restart_msg": RESTART_MESSAGE})
