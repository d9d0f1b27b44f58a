from __future__ import annotations

"""Dialog runtime: turn context, bot state, dialog stack, waterfalls and prompts."""

from business_logic.dialog.choices import Choice, ChoiceFactory, FoundChoice, ListStyle, recognize_choice
from business_logic.dialog.dialogs import (
    ComponentDialog,
    Dialog,
    DialogContext,
    DialogInstance,
    DialogReason,
    DialogSet,
    DialogState,
    DialogTurnResult,
    DialogTurnStatus,
)
from business_logic.dialog.errors import DialogError, DialogNotFoundError, DialogStateError, WaterfallStepError
from business_logic.dialog.prompts import (
    ChoicePrompt,
    Prompt,
    PromptOptions,
    PromptRecognizerResult,
    PromptValidatorContext,
    TextPrompt,
)
from business_logic.dialog.state import (
    BotState,
    ConversationState,
    StatePropertyAccessor,
    UserState,
    state_model,
    state_type,
)
from business_logic.dialog.turn_context import BotAdapter, BotLogic, TurnContext, TurnErrorHandler
from business_logic.dialog.waterfall import WaterfallDialog, WaterfallStep, WaterfallStepContext

__all__ = [
    "BotAdapter",
    "BotLogic",
    "BotState",
    "Choice",
    "ChoiceFactory",
    "ChoicePrompt",
    "ComponentDialog",
    "ConversationState",
    "Dialog",
    "DialogContext",
    "DialogError",
    "DialogInstance",
    "DialogNotFoundError",
    "DialogReason",
    "DialogSet",
    "DialogState",
    "DialogStateError",
    "DialogTurnResult",
    "DialogTurnStatus",
    "FoundChoice",
    "ListStyle",
    "Prompt",
    "PromptOptions",
    "PromptRecognizerResult",
    "PromptValidatorContext",
    "StatePropertyAccessor",
    "TextPrompt",
    "TurnContext",
    "TurnErrorHandler",
    "UserState",
    "WaterfallDialog",
    "WaterfallStep",
    "WaterfallStepContext",
    "WaterfallStepError",
    "recognize_choice",
    "state_model",
    "state_type",
]
