from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from business_logic.dialog import TurnContext
from foundational_service.contracts.activity import Activity
from interface_entry.channel import ChannelAdapter, ChannelDeliveryError


def _inbound(**overrides) -> Activity:
    payload = {
        "type": "message",
        "id": "act-1",
        "text": "hello",
        "channelId": "webchat",
        "serviceUrl": "https://channel.test/",
        "conversation": {"id": "conv-9"},
        "from": {"id": "user-1"},
        "recipient": {"id": "bot-1"},
    }
    payload.update(overrides)
    return Activity.model_validate(payload)


async def _reply(context: TurnContext) -> None:
    await context.send_activity("hi there")


@pytest.mark.asyncio
async def test_replies_are_posted_to_the_service_url() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"id": "reply-1"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        adapter = ChannelAdapter(http_client=client)
        result = await adapter.process_activity(_inbound(), _reply)
        await adapter.close()
        assert not client.is_closed

    assert result is None
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://channel.test/v3/conversations/conv-9/activities/act-1"
    body = json.loads(request.content)
    assert body["text"] == "hi there"
    assert body["replyToId"] == "act-1"
    assert body["from"] == {"id": "bot-1"}
    assert body["recipient"] == {"id": "user-1"}


@pytest.mark.asyncio
async def test_expect_replies_buffers_instead_of_posting() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("buffered turns must not call the channel")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        adapter = ChannelAdapter(http_client=client)
        replies = await adapter.process_activity(_inbound(deliveryMode="expectReplies"), _reply)

    assert replies is not None
    assert [reply.text for reply in replies] == ["hi there"]


@pytest.mark.asyncio
async def test_stream_sender_receives_replies() -> None:
    streamed: List[Activity] = []

    async def sender(activity: Activity) -> None:
        streamed.append(activity)

    adapter = ChannelAdapter()
    result = await adapter.process_activity(_inbound(), _reply, sender=sender)

    assert result is None
    assert [activity.text for activity in streamed] == ["hi there"]


@pytest.mark.asyncio
async def test_delivery_failure_reaches_the_turn_error_handler() -> None:
    failures: List[Exception] = []

    async def on_turn_error(context: TurnContext, error: Exception) -> None:
        failures.append(error)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        adapter = ChannelAdapter(on_turn_error=on_turn_error, http_client=client)
        await adapter.process_activity(_inbound(), _reply)

    assert len(failures) == 1
    assert isinstance(failures[0], ChannelDeliveryError)
    assert failures[0].status_code == 502


@pytest.mark.asyncio
async def test_missing_service_url_cannot_be_delivered() -> None:
    adapter = ChannelAdapter()

    with pytest.raises(ChannelDeliveryError, match="serviceUrl"):
        await adapter.process_activity(_inbound(serviceUrl=None), _reply)


@pytest.mark.asyncio
async def test_update_and_delete_address_the_activity() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"id": "act-2"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        adapter = ChannelAdapter(http_client=client)
        context = TurnContext(adapter, _inbound())
        response = await context.update_activity(Activity(type="message", id="act-2", text="edited"))
        await context.delete_activity("act-2")

    assert response is not None and response.id == "act-2"
    assert [(request.method, request.url.path) for request in requests] == [
        ("PUT", "/v3/conversations/conv-9/activities/act-2"),
        ("DELETE", "/v3/conversations/conv-9/activities/act-2"),
    ]
