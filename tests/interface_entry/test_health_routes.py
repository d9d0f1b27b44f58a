from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from interface_entry.bootstrap.health_routes import register_health_routes


def test_healthz_reports_starting_until_a_runtime_is_attached() -> None:
    app = FastAPI()
    register_health_routes(app)
    client = TestClient(app)

    body = client.get("/healthz").json()
    head = client.head("/healthz")

    assert body["status"] == "starting"
    assert body["timestamp"]
    assert "nlu_configured" not in body
    assert head.status_code == 503
