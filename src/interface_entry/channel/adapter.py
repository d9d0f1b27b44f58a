from __future__ import annotations

"""Channel adapter for the messaging service protocol spoken on `/api/messages`."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import httpx

from business_logic.dialog import BotAdapter, BotLogic, TurnContext, TurnErrorHandler
from foundational_service.contracts.activity import (
    Activity,
    ActivityTypes,
    ConversationReference,
    ResourceResponse,
)
from project_utility.tracing import trace_span

__all__ = ["ActivitySender", "ChannelAdapter", "ChannelDeliveryError"]

log = logging.getLogger(__name__)

ActivitySender = Callable[[Activity], Awaitable[None]]

_BUFFERED_REPLIES = "channel.buffered_replies"
_STREAM_SENDER = "channel.stream_sender"


class ChannelDeliveryError(RuntimeError):
    """Raised when an outbound activity cannot be handed to the channel service."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _activities_url(service_url: Optional[str], conversation_id: Optional[str]) -> str:
    if not service_url:
        raise ChannelDeliveryError("activity has no serviceUrl to reply to")
    if not conversation_id:
        raise ChannelDeliveryError("activity has no conversation id to reply to")
    return f"{service_url.rstrip('/')}/v3/conversations/{conversation_id}/activities"


class ChannelAdapter(BotAdapter):
    """
    Runs inbound activities through the bot and delivers the replies.

    Replies go back over HTTP to the channel's `serviceUrl`, unless the inbound activity asked for
    `expectReplies` (they are buffered and returned to the caller) or the turn arrived over a
    streaming connection (they are written to that connection).
    """

    def __init__(
        self,
        *,
        on_turn_error: Optional[TurnErrorHandler] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        super().__init__(on_turn_error=on_turn_error)
        self._http_client = http_client
        self._owns_client = http_client is None
        self._timeout = timeout_seconds

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def process_activity(
        self,
        activity: Activity,
        logic: BotLogic,
        *,
        sender: Optional[ActivitySender] = None,
    ) -> Optional[List[Activity]]:
        """Run one turn; returns the buffered replies when the activity expects them, else None."""

        context = TurnContext(self, activity)
        buffered: Optional[List[Activity]] = [] if activity.expects_replies() else None
        if buffered is not None:
            context.turn_state[_BUFFERED_REPLIES] = buffered
        if sender is not None:
            context.turn_state[_STREAM_SENDER] = sender

        async with trace_span(
            "channel.turn",
            activity_type=activity.type,
            channel_id=activity.channel_id,
        ) as span:
            await self.run_pipeline(context, logic)
            span.set_attribute("responded", context.responded)
        return buffered

    async def send_activities(self, context: TurnContext, activities: List[Activity]) -> List[ResourceResponse]:
        buffered: Optional[List[Activity]] = context.turn_state.get(_BUFFERED_REPLIES)
        sender: Optional[ActivitySender] = context.turn_state.get(_STREAM_SENDER)
        responses: List[ResourceResponse] = []
        for activity in activities:
            if activity.type == ActivityTypes.DELAY:
                await asyncio.sleep(float(activity.value or 0) / 1000)
                responses.append(ResourceResponse())
            elif buffered is not None:
                buffered.append(activity)
                responses.append(ResourceResponse(id=activity.id))
            elif sender is not None:
                await sender(activity)
                responses.append(ResourceResponse(id=activity.id))
            else:
                responses.append(await self._post_activity(activity))
        return responses

    async def update_activity(self, context: TurnContext, activity: Activity) -> Optional[ResourceResponse]:
        conversation_id = activity.conversation.id if activity.conversation else None
        if not activity.id:
            raise ChannelDeliveryError("update_activity() requires the id of the activity to replace")
        url = f"{_activities_url(activity.service_url, conversation_id)}/{activity.id}"
        response = await self._request("PUT", url, json=activity.to_wire())
        return self._to_resource_response(response)

    async def delete_activity(self, context: TurnContext, reference: ConversationReference) -> None:
        conversation_id = reference.conversation.id if reference.conversation else None
        if not reference.activity_id:
            raise ChannelDeliveryError("delete_activity() requires the id of the activity to remove")
        url = f"{_activities_url(reference.service_url, conversation_id)}/{reference.activity_id}"
        await self._request("DELETE", url)

    async def _post_activity(self, activity: Activity) -> ResourceResponse:
        conversation_id = activity.conversation.id if activity.conversation else None
        url = _activities_url(activity.service_url, conversation_id)
        if activity.reply_to_id:
            url = f"{url}/{activity.reply_to_id}"
        response = await self._request("POST", url, json=activity.to_wire())
        return self._to_resource_response(response)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client().request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.warning(
                "channel.delivery_failed",
                extra={"status_code": exc.response.status_code, "backend": url},
            )
            raise ChannelDeliveryError(
                f"{method} {url} failed with status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            log.warning("channel.delivery_failed", extra={"backend": url, "status": type(exc).__name__})
            raise ChannelDeliveryError(f"{method} {url} failed: {exc}") from exc
        log.debug("channel.delivered", extra={"status_code": response.status_code, "backend": url})
        return response

    @staticmethod
    def _to_resource_response(response: httpx.Response) -> ResourceResponse:
        if not response.content:
            return ResourceResponse()
        try:
            body = response.json()
        except ValueError:
            return ResourceResponse()
        if isinstance(body, dict):
            return ResourceResponse(id=body.get("id"))
        return ResourceResponse()
