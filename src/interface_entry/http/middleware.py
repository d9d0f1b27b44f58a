"""Request middleware: request-id binding and one `http.request` telemetry event per request."""

from __future__ import annotations

from time import perf_counter
from typing import Awaitable, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from project_utility.context import ContextBridge
from project_utility.telemetry import emit as telemetry_emit

REQUEST_ID_HEADER = "x-request-id"
RESPONSE_TIME_HEADER = "x-response-time-ms"

# Health checks report at debug level unless they fail.
_QUIET_PATHS = frozenset({"/healthz"})
_ACTIVITY_FIELDS = ("activity_type", "channel_id")


def _level_for(path: str, status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "debug" if path in _QUIET_PATHS else "info"


class FastAPIRequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = ContextBridge.set_request_id(request.headers.get(REQUEST_ID_HEADER))
        ContextBridge.set_conversation_id(None)
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start = perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[RESPONSE_TIME_HEADER] = f"{(perf_counter() - start) * 1000:.3f}"
            return response
        finally:
            payload: Dict[str, object] = {
                "status_code": status_code,
                "latency_ms": round((perf_counter() - start) * 1000, 3),
            }
            for name in _ACTIVITY_FIELDS:
                value = getattr(request.state, name, None)
                if value:
                    payload[name] = value
            telemetry_emit(
                "http.request",
                level=_level_for(request.url.path, status_code),
                request_id=getattr(request.state, "request_id", None) or ContextBridge.request_id(),
                path=request.url.path,
                method=request.method,
                payload=payload,
            )


__all__ = ["FastAPIRequestIDMiddleware", "LoggingMiddleware", "REQUEST_ID_HEADER", "RESPONSE_TIME_HEADER"]
