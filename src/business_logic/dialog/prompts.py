from __future__ import annotations

"""Prompts: single-question dialogs that re-ask until the answer is usable."""

import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from business_logic.dialog.choices import Choice, ChoiceFactory, ListStyle, recognize_choice
from business_logic.dialog.dialogs import (
    Dialog,
    DialogContext,
    DialogInstance,
    DialogReason,
    DialogTurnResult,
)
from business_logic.dialog.state import state_model, state_type
from business_logic.dialog.turn_context import TurnContext
from foundational_service.contracts.activity import Activity, ActivityTypes, InputHints, text_activity

__all__ = [
    "ChoicePrompt",
    "Prompt",
    "PromptOptions",
    "PromptRecognizerResult",
    "PromptValidator",
    "PromptValidatorContext",
    "TextPrompt",
]

log = logging.getLogger(__name__)

state_model(Activity)

_PERSISTED_OPTIONS = "options"
_PERSISTED_STATE = "state"
_ATTEMPT_COUNT = "attempt_count"


@state_type
@dataclass(slots=True)
class PromptOptions:
    prompt: Optional[Union[Activity, str]] = None
    retry_prompt: Optional[Union[Activity, str]] = None
    choices: List[Choice] = field(default_factory=list)
    style: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.prompt, str):
            self.prompt = text_activity(self.prompt, input_hint=InputHints.EXPECTING_INPUT)
        if isinstance(self.retry_prompt, str):
            self.retry_prompt = text_activity(self.retry_prompt, input_hint=InputHints.EXPECTING_INPUT)
        self.choices = ChoiceFactory.to_choices(self.choices or [])


@dataclass(slots=True)
class PromptRecognizerResult:
    succeeded: bool = False
    value: Any = None


@dataclass(slots=True)
class PromptValidatorContext:
    context: TurnContext
    recognized: PromptRecognizerResult
    state: Dict[str, Any]
    options: PromptOptions

    @property
    def attempt_count(self) -> int:
        return int(self.state.get(_ATTEMPT_COUNT, 0))


PromptValidator = Callable[[PromptValidatorContext], Awaitable[bool]]


class Prompt(Dialog):
    def __init__(self, dialog_id: str, validator: Optional[PromptValidator] = None) -> None:
        super().__init__(dialog_id)
        self._validator = validator

    async def begin_dialog(self, dialog_context: DialogContext, options: Any = None) -> DialogTurnResult:
        if not isinstance(options, PromptOptions):
            raise TypeError(f"{type(self).__name__}.begin_dialog(): options must be PromptOptions")
        state = dialog_context.active_dialog.state
        state[_PERSISTED_OPTIONS] = options
        state[_PERSISTED_STATE] = {_ATTEMPT_COUNT: 0}
        await self.on_prompt(dialog_context.context, state[_PERSISTED_STATE], options, False)
        return Dialog.end_of_turn

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        context = dialog_context.context
        if context.activity.type != ActivityTypes.MESSAGE:
            return Dialog.end_of_turn

        instance = dialog_context.active_dialog
        state: Dict[str, Any] = instance.state[_PERSISTED_STATE]
        options: PromptOptions = instance.state[_PERSISTED_OPTIONS]
        recognized = await self.on_recognize(context, state, options)
        state[_ATTEMPT_COUNT] = int(state.get(_ATTEMPT_COUNT, 0)) + 1

        if self._validator is not None:
            is_valid = await self._validator(PromptValidatorContext(context, recognized, state, options))
        else:
            is_valid = recognized.succeeded

        if is_valid:
            return await dialog_context.end_dialog(recognized.value)

        log.debug(
            "prompt.retry",
            extra={"dialog_id": self.id, "status": f"attempt={state[_ATTEMPT_COUNT]}"},
        )
        if not context.responded:
            await self.on_prompt(context, state, options, True)
        return Dialog.end_of_turn

    async def resume_dialog(
        self,
        dialog_context: DialogContext,
        reason: DialogReason,
        result: Any = None,
    ) -> DialogTurnResult:
        await self.reprompt_dialog(dialog_context.context, dialog_context.active_dialog)
        return Dialog.end_of_turn

    async def reprompt_dialog(self, context: TurnContext, instance: DialogInstance) -> None:
        await self.on_prompt(context, instance.state[_PERSISTED_STATE], instance.state[_PERSISTED_OPTIONS], False)

    @abstractmethod
    async def on_prompt(
        self,
        context: TurnContext,
        state: Dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        """Send the question (or the retry question) to the user."""

    @abstractmethod
    async def on_recognize(
        self,
        context: TurnContext,
        state: Dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult:
        """Turn the inbound activity into a prompt value."""


class TextPrompt(Prompt):
    async def on_prompt(
        self,
        context: TurnContext,
        state: Dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        activity = options.retry_prompt if is_retry and options.retry_prompt is not None else options.prompt
        if activity is not None:
            await context.send_activity(activity)

    async def on_recognize(
        self,
        context: TurnContext,
        state: Dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult:
        text = context.activity.text
        if isinstance(text, str):
            return PromptRecognizerResult(succeeded=True, value=text)
        return PromptRecognizerResult()


class ChoicePrompt(Prompt):
    """Ask the user to pick one of `PromptOptions.choices`; resolves to a `FoundChoice`."""

    def __init__(
        self,
        dialog_id: str,
        validator: Optional[PromptValidator] = None,
        *,
        style: str = ListStyle.AUTO,
    ) -> None:
        super().__init__(dialog_id, validator)
        self.style = style

    async def on_prompt(
        self,
        context: TurnContext,
        state: Dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        source = options.retry_prompt if is_retry and options.retry_prompt is not None else options.prompt
        style = options.style or self.style
        activity = source.model_copy(deep=True) if source is not None else text_activity("")
        activity.text = ChoiceFactory.render(options.choices, activity.text, style)
        if activity.input_hint is None:
            activity.input_hint = InputHints.EXPECTING_INPUT
        await context.send_activity(activity)

    async def on_recognize(
        self,
        context: TurnContext,
        state: Dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult:
        found = recognize_choice(context.activity.text or "", options.choices)
        if found is None:
            return PromptRecognizerResult()
        return PromptRecognizerResult(succeeded=True, value=found)
