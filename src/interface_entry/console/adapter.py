from __future__ import annotations

"""Console channel: one turn per line of input, replies printed to the terminal."""

import asyncio
import sys
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, TextIO, Union

from rich.console import Console

from business_logic.dialog import BotAdapter, BotLogic, TurnContext, TurnErrorHandler
from foundational_service.contracts.activity import (
    Activity,
    ActivityTypes,
    ConversationReference,
    ResourceResponse,
)
from project_utility.clock import utc_now

__all__ = ["ConsoleAdapter", "DEFAULT_CONSOLE_REFERENCE"]

DEFAULT_CONSOLE_REFERENCE: Dict[str, Any] = {
    "bot": {"id": "bot", "name": "Bot"},
    "channelId": "console",
    "conversation": {"id": "convo1", "name": "", "isGroup": False},
    "serviceUrl": "",
    "user": {"id": "user", "name": "User1"},
}

InputSource = Union[TextIO, AsyncIterator[str]]


class ConsoleAdapter(BotAdapter):
    def __init__(
        self,
        reference: Optional[Union[ConversationReference, Mapping[str, Any]]] = None,
        *,
        on_turn_error: Optional[TurnErrorHandler] = None,
        output: Optional[TextIO] = None,
        error_output: Optional[TextIO] = None,
    ) -> None:
        super().__init__(on_turn_error=on_turn_error)
        merged = dict(DEFAULT_CONSOLE_REFERENCE)
        if isinstance(reference, ConversationReference):
            merged.update(reference.to_wire())
        elif reference:
            merged.update(reference)
        self.reference = ConversationReference.model_validate(merged)
        self._next_id = 0
        self._closed = False
        self._console = Console(file=output or sys.stdout, highlight=False, markup=False, emoji=False)
        self._error_console = Console(file=error_output or sys.stderr, highlight=False, markup=False, emoji=False)

    async def listen(self, logic: BotLogic, input_stream: Optional[InputSource] = None) -> None:
        """Run `logic` once per input line until the input is exhausted or `close()` is called."""

        self._closed = False
        async for line in self._lines(input_stream if input_stream is not None else sys.stdin):
            if self._closed:
                break
            activity = Activity(
                id=str(self._next_id),
                type=ActivityTypes.MESSAGE,
                text=line,
                timestamp=utc_now(),
            ).apply_conversation_reference(self.reference, is_incoming=True)
            self._next_id += 1
            await self._run_turn(TurnContext(self, activity), logic)

    def close(self) -> None:
        self._closed = True

    async def continue_conversation(self, reference: ConversationReference, logic: BotLogic) -> None:
        activity = Activity().apply_conversation_reference(reference, is_incoming=True)
        await self._run_turn(TurnContext(self, activity), logic)

    async def send_activities(self, context: TurnContext, activities: List[Activity]) -> List[ResourceResponse]:
        responses: List[ResourceResponse] = []
        for activity in activities:
            responses.append(ResourceResponse())
            if activity.type == ActivityTypes.DELAY:
                await asyncio.sleep(float(activity.value or 0) / 1000)
            elif activity.type == ActivityTypes.MESSAGE:
                count = len(activity.attachments or [])
                if count:
                    suffix = "(1 attachment)" if count == 1 else f"({count} attachments)"
                    self.print(f"{activity.text} {suffix}")
                else:
                    self.print(activity.text or "")
            else:
                self.print(f"[{activity.type}]")
        return responses

    async def update_activity(self, context: TurnContext, activity: Activity) -> Optional[ResourceResponse]:
        raise NotImplementedError("ConsoleAdapter.update_activity(): not supported.")

    async def delete_activity(self, context: TurnContext, reference: ConversationReference) -> None:
        raise NotImplementedError("ConsoleAdapter.delete_activity(): not supported.")

    def print(self, line: str) -> None:
        self._console.print(line, soft_wrap=True)

    def print_error(self, line: str) -> None:
        self._error_console.print(line, soft_wrap=True)

    async def _run_turn(self, context: TurnContext, logic: BotLogic) -> None:
        try:
            await self.run_pipeline(context, logic)
        except Exception as exc:
            self.print_error(str(exc))

    async def _lines(self, source: InputSource) -> AsyncIterator[str]:
        if hasattr(source, "__aiter__"):
            async for line in source:  # type: ignore[union-attr]
                yield line.rstrip("\r\n")
            return
        while not self._closed:
            line = await asyncio.to_thread(source.readline)  # type: ignore[union-attr]
            if not line:
                return
            yield line.rstrip("\r\n")
