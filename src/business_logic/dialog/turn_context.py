from __future__ import annotations

"""Turn context and the adapter base class shared by every channel."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from foundational_service.contracts.activity import (
    Activity,
    ActivityTypes,
    ConversationReference,
    InputHints,
    ResourceResponse,
    text_activity,
    trace_activity,
)
from project_utility.context import ContextBridge

__all__ = [
    "BotAdapter",
    "BotLogic",
    "Middleware",
    "TurnContext",
    "TurnErrorHandler",
]


BotLogic = Callable[["TurnContext"], Awaitable[None]]
Middleware = Callable[["TurnContext", Callable[[], Awaitable[None]]], Awaitable[None]]
TurnErrorHandler = Callable[["TurnContext", Exception], Awaitable[None]]


class TurnContext:
    """Everything the bot knows about the current inbound activity, plus the way to reply to it."""

    def __init__(self, adapter: "BotAdapter", activity: Activity) -> None:
        if adapter is None:
            raise TypeError("TurnContext(): adapter is required")
        if activity is None:
            raise TypeError("TurnContext(): activity is required")
        self.adapter = adapter
        self.activity = activity
        self.responded = False
        self.turn_state: Dict[str, Any] = {}

    async def send_activity(
        self,
        activity_or_text: Union[Activity, str],
        speak: Optional[str] = None,
        input_hint: Optional[str] = None,
    ) -> Optional[ResourceResponse]:
        if isinstance(activity_or_text, str):
            activity = text_activity(activity_or_text, speak=speak, input_hint=input_hint or InputHints.ACCEPTING_INPUT)
        else:
            activity = activity_or_text
        responses = await self.send_activities([activity])
        return responses[0] if responses else None

    async def send_activities(self, activities: Sequence[Activity]) -> List[ResourceResponse]:
        reference = self.activity.get_conversation_reference()
        outgoing: List[Activity] = []
        for item in activities:
            activity = item.model_copy(deep=True)
            activity.apply_conversation_reference(reference)
            if activity.type is None:
                activity.type = ActivityTypes.MESSAGE
            if activity.type == ActivityTypes.MESSAGE and activity.input_hint is None:
                activity.input_hint = InputHints.ACCEPTING_INPUT
            outgoing.append(activity)
        if not outgoing:
            return []
        responses = await self.adapter.send_activities(self, outgoing)
        if any(activity.type != ActivityTypes.TRACE for activity in outgoing):
            self.responded = True
        return responses

    async def send_trace_activity(
        self,
        name: str,
        value: Any = None,
        value_type: Optional[str] = None,
        label: Optional[str] = None,
    ) -> Optional[ResourceResponse]:
        return await self.send_activity(trace_activity(name, value=value, value_type=value_type, label=label))

    async def update_activity(self, activity: Activity) -> Optional[ResourceResponse]:
        reference = self.activity.get_conversation_reference()
        outgoing = activity.model_copy(deep=True).apply_conversation_reference(reference)
        return await self.adapter.update_activity(self, outgoing)

    async def delete_activity(self, id_or_reference: Union[str, ConversationReference]) -> None:
        if isinstance(id_or_reference, str):
            reference = self.activity.get_conversation_reference()
            reference.activity_id = id_or_reference
        else:
            reference = id_or_reference
        await self.adapter.delete_activity(self, reference)


class BotAdapter(ABC):
    """Channel-neutral turn pipeline: middleware, bot logic, and the top-level error handler."""

    def __init__(self, *, on_turn_error: Optional[TurnErrorHandler] = None) -> None:
        self.on_turn_error = on_turn_error
        self._middleware: List[Middleware] = []

    def use(self, middleware: Middleware) -> "BotAdapter":
        self._middleware.append(middleware)
        return self

    @abstractmethod
    async def send_activities(self, context: TurnContext, activities: List[Activity]) -> List[ResourceResponse]:
        """Deliver outbound activities to the channel."""

    @abstractmethod
    async def update_activity(self, context: TurnContext, activity: Activity) -> Optional[ResourceResponse]:
        """Replace a previously sent activity."""

    @abstractmethod
    async def delete_activity(self, context: TurnContext, reference: ConversationReference) -> None:
        """Remove a previously sent activity."""

    async def continue_conversation(self, reference: ConversationReference, logic: BotLogic) -> None:
        """Run `logic` for a proactive turn addressed by `reference`."""

        activity = Activity(type=ActivityTypes.EVENT, name="continueConversation")
        activity.apply_conversation_reference(reference, is_incoming=True)
        await self.run_pipeline(TurnContext(self, activity), logic)

    async def run_pipeline(self, context: TurnContext, logic: Optional[BotLogic]) -> None:
        conversation = context.activity.conversation
        ContextBridge.set_conversation_id(conversation.id if conversation else None)
        try:
            await self._run_middleware(context, 0, logic)
        except Exception as exc:
            if self.on_turn_error is None:
                raise
            await self.on_turn_error(context, exc)

    async def _run_middleware(self, context: TurnContext, index: int, logic: Optional[BotLogic]) -> None:
        if index < len(self._middleware):
            async def _next() -> None:
                await self._run_middleware(context, index + 1, logic)

            await self._middleware[index](context, _next)
            return
        if logic is not None:
            await logic(context)
