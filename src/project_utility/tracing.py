"""
Turn-scoped tracing spans.

A span times one async block (a turn, an NLU prediction, a channel delivery) and emits
`trace.start` / `trace.end` telemetry. Spans opened inside another span record it as their parent,
so the events of one turn can be stitched back together from the telemetry file.
"""

from __future__ import annotations

import contextvars
import uuid
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, Optional

from project_utility.telemetry import emit as telemetry_emit

_current_span: contextvars.ContextVar[Optional["TraceSpan"]] = contextvars.ContextVar("trace_span", default=None)


@dataclass(slots=True)
class TraceSpan:
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    parent_id: Optional[str] = None
    status: str = "open"
    duration_ms: float = 0.0
    _start: float = field(init=False, default=0.0)
    _token: Optional[contextvars.Token] = field(init=False, default=None)

    async def __aenter__(self) -> "TraceSpan":
        parent = _current_span.get()
        if parent is not None:
            self.parent_id = parent.span_id
        self._token = _current_span.set(self)
        self._start = perf_counter()
        telemetry_emit(
            "trace.start",
            level="debug",
            span=self.name,
            payload={"span_id": self.span_id, "parent_id": self.parent_id, "attributes": dict(self.attributes)},
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.duration_ms = round((perf_counter() - self._start) * 1000, 3)
        self.status = "error" if exc is not None else "ok"
        if self._token is not None:
            _current_span.reset(self._token)
            self._token = None
        payload: Dict[str, Any] = {
            **self.attributes,
            "span_id": self.span_id,
            "parent_id": self.parent_id,
            "status": self.status,
            "duration_ms": self.duration_ms,
        }
        if exc is not None:
            payload["error"] = repr(exc)
        telemetry_emit(
            "trace.end",
            level="warning" if exc is not None else "debug",
            span=self.name,
            payload=payload,
            sensitive=["error"],
        )
        return False

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value


def current_span() -> Optional[TraceSpan]:
    return _current_span.get()


def trace_span(name: str, **attributes: Any) -> TraceSpan:
    """
    Create an asynchronous trace span context manager.

    Usage:
        async with trace_span("luis.predict", slot="production") as span:
            span.set_attribute("status_code", 200)
    """

    return TraceSpan(name=name, attributes=dict(attributes))


__all__ = ["TraceSpan", "current_span", "trace_span"]
