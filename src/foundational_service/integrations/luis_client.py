"""LUIS v3 prediction client used by the intent recognizer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import httpx

from project_utility.tracing import trace_span

__all__ = [
    "LuisApplication",
    "LuisPredictionClient",
    "LuisRequestError",
    "RecognizerResult",
]

log = logging.getLogger(__name__)

_SUPPORTED_API_VERSIONS = ("v3",)


class LuisRequestError(RuntimeError):
    """Raised when the prediction endpoint cannot be reached or answers with an error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class LuisApplication:
    application_id: Optional[str] = None
    endpoint: Optional[str] = None
    endpoint_key: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.application_id and self.endpoint and self.endpoint_key)


@dataclass(slots=True)
class RecognizerResult:
    text: str
    altered_text: Optional[str] = None
    intents: Dict[str, Dict[str, float]] = field(default_factory=dict)
    entities: Dict[str, List[Any]] = field(default_factory=dict)
    raw: Mapping[str, Any] = field(default_factory=dict)

    def get_top_scoring_intent(self) -> tuple[str, float]:
        top_name, top_score = "", 0.0
        for name, payload in self.intents.items():
            score = float(payload.get("score", 0.0))
            if not top_name or score > top_score:
                top_name, top_score = name, score
        return top_name, top_score


class LuisPredictionClient:
    """Thin async wrapper over the prediction REST endpoint."""

    def __init__(
        self,
        application: LuisApplication,
        *,
        api_version: str = "v3",
        slot: str = "production",
        include_all_intents: bool = True,
        log_queries: bool = True,
        timeout_seconds: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if api_version not in _SUPPORTED_API_VERSIONS:
            raise ValueError(f"unsupported LUIS api_version: {api_version}")
        if not application.is_complete:
            raise ValueError("LuisApplication requires application_id, endpoint and endpoint_key")
        self.application = application
        self.api_version = api_version
        self.slot = slot
        self.include_all_intents = include_all_intents
        self.log_queries = log_queries
        self._timeout = timeout_seconds
        self._http_client = http_client

    @property
    def prediction_url(self) -> str:
        endpoint = str(self.application.endpoint).rstrip("/")
        return (
            f"{endpoint}/luis/prediction/v3.0/apps/{self.application.application_id}"
            f"/slots/{self.slot}/predict"
        )

    async def recognize(self, utterance: str) -> RecognizerResult:
        text = (utterance or "").strip()
        if not text:
            return RecognizerResult(text=utterance or "")

        params = {
            "query": text,
            "subscription-key": str(self.application.endpoint_key),
            "verbose": "true",
            "show-all-intents": "true" if self.include_all_intents else "false",
            "log": "true" if self.log_queries else "false",
        }
        async with trace_span("luis.predict", slot=self.slot) as span:
            try:
                if self._http_client is not None:
                    response = await self._http_client.get(self.prediction_url, params=params)
                else:
                    async with httpx.AsyncClient(timeout=self._timeout) as client:
                        response = await client.get(self.prediction_url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                span.set_attribute("status_code", exc.response.status_code)
                raise LuisRequestError(
                    f"prediction request failed with status {exc.response.status_code}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                raise LuisRequestError(f"prediction request failed: {exc}") from exc
            span.set_attribute("status_code", response.status_code)

        result = self._to_result(utterance, response.json())
        log.debug(
            "luis.prediction.received",
            extra={"intent": result.get_top_scoring_intent()[0], "status_code": response.status_code},
        )
        return result

    @staticmethod
    def _to_result(utterance: str, body: Mapping[str, Any]) -> RecognizerResult:
        prediction = body.get("prediction") or {}
        intents: Dict[str, Dict[str, float]] = {}
        for name, payload in (prediction.get("intents") or {}).items():
            score = payload.get("score", 0.0) if isinstance(payload, Mapping) else 0.0
            intents[name] = {"score": float(score or 0.0)}
        entities = {
            name: list(values) if isinstance(values, list) else [values]
            for name, values in (prediction.get("entities") or {}).items()
        }
        return RecognizerResult(
            text=str(body.get("query") or utterance),
            altered_text=prediction.get("alteredQuery"),
            intents=intents,
            entities=entities,
            raw=dict(body),
        )
