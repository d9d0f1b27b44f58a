"""
Context utilities for request-id and conversation-id propagation across async boundaries.

Every inbound turn (HTTP webhook, streaming socket frame, or console line) binds its identifiers
here so log records and telemetry events emitted deep inside the dialog runtime can be correlated.
"""

from __future__ import annotations

import contextvars
import uuid
from dataclasses import dataclass
from typing import Optional

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
_conversation_id: contextvars.ContextVar[str] = contextvars.ContextVar("conversation_id", default="")


@dataclass(slots=True)
class ContextBridge:
    """ContextVar-backed helper that guarantees a request identifier is always available."""

    @staticmethod
    def request_id() -> str:
        rid = _request_id.get()
        if not rid:
            rid = ContextBridge.set_request_id()
        return rid

    @staticmethod
    def set_request_id(value: Optional[str] = None) -> str:
        rid = value or uuid.uuid4().hex
        _request_id.set(rid)
        return rid

    @staticmethod
    def conversation_id() -> str:
        return _conversation_id.get()

    @staticmethod
    def set_conversation_id(value: Optional[str]) -> str:
        cid = value or ""
        _conversation_id.set(cid)
        return cid

    @staticmethod
    def clear() -> None:
        _request_id.set("")
        _conversation_id.set("")


__all__ = ["ContextBridge"]
