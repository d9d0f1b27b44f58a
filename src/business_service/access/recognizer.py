from __future__ import annotations

"""Intent recognizer for access requests, backed by the LUIS prediction client."""

import logging
from typing import Any, Dict, Optional

import httpx

from business_logic.dialog import TurnContext
from business_service.access.models import RequestType
from foundational_service.integrations.luis_client import (
    LuisApplication,
    LuisPredictionClient,
    RecognizerResult,
)

__all__ = [
    "INTENT_REQUEST_TYPES",
    "PROJECT_ID_ENTITY",
    "Recognizer",
    "RecognizerNotConfiguredError",
    "get_project_id",
    "parse_request_type",
    "top_intent",
]

log = logging.getLogger(__name__)

PROJECT_ID_ENTITY = "cust_project_id"

INTENT_REQUEST_TYPES: Dict[str, RequestType] = {
    "AccessTracker": RequestType.ACCESS_TRACKER,
    "AccessReport": RequestType.ACCESS_REPORT,
    "TrackerStatus": RequestType.TRACKER_STATUS,
    "ReportStatus": RequestType.REPORT_STATUS,
    "RequestRevalidation": RequestType.REQUEST_REVALIDATION,
}


class RecognizerNotConfiguredError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("LUIS recognizer is not configured (LuisAppId, LuisAPIKey, LuisAPIHostName)")


def top_intent(result: Optional[RecognizerResult], default: str = "None", min_score: float = 0.0) -> str:
    """Name of the highest scoring intent, or `default` when none scores above `min_score`."""

    if result is None:
        return default
    name, score = result.get_top_scoring_intent()
    if not name or score < min_score:
        return default
    return name


def _entity_text(value: Any) -> Optional[str]:
    if isinstance(value, list):
        return _entity_text(value[0]) if value else None
    if isinstance(value, dict):
        for key in ("text", "value"):
            if value.get(key):
                return _entity_text(value[key])
        return None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def get_project_id(result: Optional[RecognizerResult]) -> Optional[str]:
    if result is None:
        return None
    return _entity_text(result.entities.get(PROJECT_ID_ENTITY))


def parse_request_type(result: Optional[RecognizerResult]) -> Optional[RequestType]:
    return INTENT_REQUEST_TYPES.get(top_intent(result))


class Recognizer:
    """Wraps the prediction client; reports `is_configured == False` when credentials are missing."""

    def __init__(
        self,
        config: Optional[LuisApplication],
        *,
        slot: str = "production",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client: Optional[LuisPredictionClient] = None
        if config is not None and config.is_complete:
            self._client = LuisPredictionClient(config, api_version="v3", slot=slot, http_client=http_client)
        else:
            log.warning("recognizer.not_configured", extra={"status": "disabled"})

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def execute_luis_query(self, turn_context: TurnContext) -> RecognizerResult:
        if self._client is None:
            raise RecognizerNotConfiguredError()
        result = await self._client.recognize(turn_context.activity.text or "")
        log.info("recognizer.result", extra={"intent": top_intent(result)})
        return result

    def parse_luis_result(self, result: RecognizerResult) -> Optional[RequestType]:
        return parse_request_type(result)
