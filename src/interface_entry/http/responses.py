from __future__ import annotations

"""Response bodies served by the bot's HTTP surface."""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiMeta(BaseModel):
    request_id: str = Field(alias="requestId")
    warnings: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class ApiError(BaseModel):
    code: str
    message: str
    field: Optional[str] = None


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for error bodies; `data` stays empty when `errors` is set."""

    data: Optional[T]
    meta: ApiMeta
    errors: List[ApiError] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class ExpectedReplies(BaseModel):
    """Body of a `deliveryMode: expectReplies` turn: every reply the bot produced, in order."""

    activities: List[Dict[str, Any]] = Field(default_factory=list)


class StreamError(BaseModel):
    """Frame written back on the streaming socket when an inbound frame is rejected."""

    errors: List[Dict[str, Any]]


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    nlu_configured: Optional[bool] = None
    state_backend: Optional[str] = None


__all__ = ["ApiError", "ApiMeta", "ApiResponse", "ExpectedReplies", "HealthStatus", "StreamError"]
