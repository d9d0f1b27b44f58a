"""
Messaging endpoint: `POST /api/messages` for webhook delivery and `WS /api/messages` for streaming.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from foundational_service.contracts.activity import Activity
from interface_entry.http.responses import ExpectedReplies, StreamError
from project_utility.context import ContextBridge
from project_utility.tracing import trace_span

log = logging.getLogger(__name__)

MESSAGES_PATH = "/api/messages"


def _parse_activity(payload: Any) -> Activity:
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_ACTIVITY", "message": "activity payload must be a JSON object"},
        )
    try:
        activity = Activity.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "INVALID_ACTIVITY",
                "message": str(first.get("msg") or "invalid activity"),
                "field": ".".join(str(part) for part in first.get("loc", ())),
            },
        ) from exc
    if not activity.type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_ACTIVITY", "message": "activity type is required", "field": "type"},
        )
    return activity


def get_router() -> APIRouter:
    router = APIRouter()

    @router.post(MESSAGES_PATH)
    async def post_messages(request: Request) -> Response:
        content_type = request.headers.get("content-type", "").lower()
        if "application/json" not in content_type:
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail={"code": "UNSUPPORTED_MEDIA_TYPE", "message": "expected application/json"},
            )
        try:
            payload = await request.json()
        except (ValueError, UnicodeDecodeError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_JSON", "message": "request body is not valid JSON"},
            ) from exc

        activity = _parse_activity(payload)
        request.state.activity_type = activity.type
        request.state.channel_id = activity.channel_id
        runtime = request.app.state.bot_runtime
        adapter = request.app.state.channel_adapter
        log.debug(
            "messages.activity.received",
            extra={"activity_type": activity.type, "channel_id": activity.channel_id},
        )
        async with trace_span("messages.post", activity_type=activity.type) as span:
            replies = await adapter.process_activity(activity, runtime.bot)
            span.set_attribute("buffered", replies is not None)

        if replies is not None:
            body = ExpectedReplies(activities=[reply.to_wire() for reply in replies])
            return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump())
        return Response(status_code=status.HTTP_200_OK)

    @router.websocket(MESSAGES_PATH)
    async def stream_messages(websocket: WebSocket) -> None:
        await websocket.accept()
        ContextBridge.set_request_id(websocket.headers.get("x-request-id"))
        runtime = websocket.app.state.bot_runtime
        adapter = websocket.app.state.channel_adapter

        async def _send(activity: Activity) -> None:
            await websocket.send_json(activity.to_wire())

        log.info("messages.stream.opened", extra={"status": "open"})
        while True:
            try:
                frame = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            try:
                activity = _parse_activity(json.loads(frame))
            except (ValueError, HTTPException) as exc:
                detail = exc.detail if isinstance(exc, HTTPException) else {
                    "code": "INVALID_JSON",
                    "message": "frame is not valid JSON",
                }
                await websocket.send_json(StreamError(errors=[detail]).model_dump())
                continue
            try:
                replies = await adapter.process_activity(activity, runtime.bot, sender=_send)
                for reply in replies or ():
                    await _send(reply)
            except (WebSocketDisconnect, RuntimeError) as exc:
                # The client went away mid-turn; nothing left to deliver to.
                log.info("messages.stream.dropped", extra={"status": type(exc).__name__})
                break
        log.info("messages.stream.closed", extra={"status": "closed"})

    return router


__all__ = ["MESSAGES_PATH", "get_router"]
