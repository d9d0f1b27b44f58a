from __future__ import annotations

import httpx
import pytest

from foundational_service.integrations.luis_client import (
    LuisApplication,
    LuisPredictionClient,
    LuisRequestError,
)


def _application() -> LuisApplication:
    return LuisApplication(application_id="app-1", endpoint="https://westus.api.cognitive.test/", endpoint_key="key-1")


def test_rejects_unsupported_versions_and_incomplete_applications() -> None:
    with pytest.raises(ValueError):
        LuisPredictionClient(_application(), api_version="v2")
    with pytest.raises(ValueError):
        LuisPredictionClient(LuisApplication(application_id="app-1"))


def test_prediction_url_uses_slot() -> None:
    client = LuisPredictionClient(_application(), slot="staging")

    assert client.prediction_url == (
        "https://westus.api.cognitive.test/luis/prediction/v3.0/apps/app-1/slots/staging/predict"
    )


@pytest.mark.asyncio
async def test_recognize_normalises_prediction() -> None:
    captured: dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(
            200,
            json={
                "query": "access report for PRJ-1",
                "prediction": {
                    "alteredQuery": "access report for prj-1",
                    "topIntent": "AccessReport",
                    "intents": {"AccessReport": {"score": 0.88}, "None": {"score": 0.01}},
                    "entities": {"cust_project_id": ["PRJ-1"], "$instance": {"cust_project_id": []}},
                },
            },
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = LuisPredictionClient(_application(), http_client=http_client, log_queries=False)
        result = await client.recognize("access report for PRJ-1")

    params = captured["request"].url.params
    assert params["subscription-key"] == "key-1"
    assert params["show-all-intents"] == "true"
    assert params["log"] == "false"
    assert params["verbose"] == "true"
    assert result.get_top_scoring_intent() == ("AccessReport", 0.88)
    assert result.entities["cust_project_id"] == ["PRJ-1"]
    assert result.altered_text == "access report for prj-1"
    assert result.raw["query"] == "access report for PRJ-1"


@pytest.mark.asyncio
async def test_blank_utterance_skips_the_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        result = await LuisPredictionClient(_application(), http_client=http_client).recognize("   ")

    assert result.intents == {}


@pytest.mark.asyncio
async def test_error_status_raises_luis_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"code": "401"}})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = LuisPredictionClient(_application(), http_client=http_client)
        with pytest.raises(LuisRequestError) as excinfo:
            await client.recognize("hello")

    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_transport_failure_raises_luis_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = LuisPredictionClient(_application(), http_client=http_client)
        with pytest.raises(LuisRequestError) as excinfo:
            await client.recognize("hello")

    assert excinfo.value.status_code is None
