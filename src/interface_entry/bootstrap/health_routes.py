from __future__ import annotations

from fastapi import FastAPI, Response, status

from interface_entry.http.responses import HealthStatus
from project_utility.clock import utc_iso


def register_health_routes(app: FastAPI) -> None:
    def _snapshot() -> HealthStatus:
        runtime = getattr(app.state, "bot_runtime", None)
        if runtime is None:
            return HealthStatus(status="starting", timestamp=utc_iso())
        return HealthStatus(
            status="ok",
            timestamp=utc_iso(),
            nlu_configured=runtime.recognizer.is_configured,
            state_backend=runtime.settings.state_backend,
        )

    @app.get("/healthz", response_model=HealthStatus, response_model_exclude_none=True)
    async def healthz() -> HealthStatus:
        return _snapshot()

    @app.head("/healthz")
    async def healthz_head() -> Response:
        code = status.HTTP_200_OK if getattr(app.state, "bot_runtime", None) is not None else status.HTTP_503_SERVICE_UNAVAILABLE
        return Response(status_code=code)


__all__ = ["register_health_routes"]
