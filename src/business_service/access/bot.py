from __future__ import annotations

"""Activity dispatcher that runs the main dialog and persists bot state after each turn."""

import logging

from business_logic.dialog import BotState, ComponentDialog, TurnContext, TurnErrorHandler
from foundational_service.contracts.activity import ActivityTypes
from project_utility.telemetry import emit as telemetry_emit

__all__ = [
    "DIALOG_STATE_PROPERTY",
    "DialogBot",
    "ERROR_MESSAGE",
    "ERROR_FOLLOW_UP_MESSAGE",
    "build_turn_error_handler",
]

log = logging.getLogger(__name__)

DIALOG_STATE_PROPERTY = "DialogState"
ERROR_MESSAGE = "The bot encountered an error or bug."
ERROR_FOLLOW_UP_MESSAGE = "To continue to run this bot, please fix the bot source code."
_ERROR_TRACE_TYPE = "https://www.botframework.com/schemas/error"
_EMULATOR_CHANNEL = "emulator"


class DialogBot:
    def __init__(self, conversation_state: BotState, user_state: BotState, dialog: ComponentDialog) -> None:
        if conversation_state is None:
            raise ValueError("[DialogBot]: Missing parameter. conversation_state is required")
        if user_state is None:
            raise ValueError("[DialogBot]: Missing parameter. user_state is required")
        if dialog is None:
            raise ValueError("[DialogBot]: Missing parameter. dialog is required")
        self.conversation_state = conversation_state
        self.user_state = user_state
        self.dialog = dialog
        self.dialog_state = conversation_state.create_property(DIALOG_STATE_PROPERTY)

    async def on_turn(self, turn_context: TurnContext) -> None:
        activity = turn_context.activity
        if activity.type == ActivityTypes.MESSAGE:
            log.info("bot.message", extra={"activity_type": activity.type, "channel_id": activity.channel_id})
            await self.dialog.run(turn_context, self.dialog_state)
        else:
            log.debug("bot.activity_skipped", extra={"activity_type": activity.type})

        await self.conversation_state.save_changes(turn_context)
        await self.user_state.save_changes(turn_context)

    async def __call__(self, turn_context: TurnContext) -> None:
        await self.on_turn(turn_context)


def build_turn_error_handler() -> TurnErrorHandler:
    """Top-level handler for exceptions escaping a turn; state is left exactly as the failed turn found it."""

    async def on_turn_error(turn_context: TurnContext, error: Exception) -> None:
        log.error(
            "bot.turn_error",
            exc_info=(type(error), error, error.__traceback__),
            extra={"activity_type": turn_context.activity.type, "channel_id": turn_context.activity.channel_id},
        )
        telemetry_emit(
            "bot.turn_error",
            level="error",
            payload={"error": repr(error), "channel_id": turn_context.activity.channel_id},
            sensitive=["error"],
        )
        if turn_context.activity.channel_id == _EMULATOR_CHANNEL:
            await turn_context.send_trace_activity(
                "OnTurnError Trace",
                f"{error}",
                _ERROR_TRACE_TYPE,
                "TurnError",
            )
        await turn_context.send_activity(ERROR_MESSAGE)
        await turn_context.send_activity(ERROR_FOLLOW_UP_MESSAGE)

    return on_turn_error
