from __future__ import annotations

"""Process-wide settings, loaded once at start-up from `.env` and the environment."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from foundational_service.integrations.luis_client import LuisApplication
from project_utility.config.paths import get_env_file

__all__ = ["BotSettings", "StateBackend", "load_settings"]

log = logging.getLogger(__name__)

DEFAULT_PORT = 3978


class StateBackend:
    MEMORY = "memory"
    REDIS = "redis"


@dataclass(slots=True, frozen=True)
class BotSettings:
    port: int = DEFAULT_PORT
    luis_app_id: Optional[str] = None
    luis_api_key: Optional[str] = None
    luis_api_host_name: Optional[str] = None
    luis_slot: str = "production"
    state_backend: str = StateBackend.MEMORY
    redis_url: Optional[str] = None
    state_ttl_seconds: Optional[int] = None
    log_root: Optional[Path] = None

    @property
    def luis_endpoint(self) -> Optional[str]:
        host = (self.luis_api_host_name or "").strip()
        if not host:
            return None
        if host.startswith("http://") or host.startswith("https://"):
            return host
        return f"https://{host}"

    def luis_application(self) -> LuisApplication:
        return LuisApplication(
            application_id=self.luis_app_id,
            endpoint=self.luis_endpoint,
            endpoint_key=self.luis_api_key,
        )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _coerce_int(value: Optional[str], *, name: str) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {value!r}") from exc


def load_settings(*, env_file: Optional[Path] = None, override: bool = False) -> BotSettings:
    """Read `.env` (if present) and build settings from the resulting environment."""

    dotenv_path = env_file or get_env_file()
    if dotenv_path.exists():
        load_dotenv(dotenv_path=str(dotenv_path), override=override)
        log.info("settings.env_loaded", extra={"status": "ok", "backend": str(dotenv_path)})

    port = _coerce_int(os.getenv("port") or os.getenv("PORT"), name="PORT") or DEFAULT_PORT

    backend = (os.getenv("STATE_BACKEND") or StateBackend.MEMORY).strip().lower()
    if backend not in (StateBackend.MEMORY, StateBackend.REDIS):
        raise RuntimeError(f"STATE_BACKEND must be 'memory' or 'redis', got {backend!r}")
    redis_url = _clean(os.getenv("REDIS_URL"))
    if backend == StateBackend.REDIS and not redis_url:
        raise RuntimeError("STATE_BACKEND=redis requires REDIS_URL")

    log_root_raw = _clean(os.getenv("ACCESS_BOT_LOG_ROOT"))
    return BotSettings(
        port=port,
        luis_app_id=_clean(os.getenv("LuisAppId")),
        luis_api_key=_clean(os.getenv("LuisAPIKey")),
        luis_api_host_name=_clean(os.getenv("LuisAPIHostName")),
        luis_slot=_clean(os.getenv("LuisSlot")) or "production",
        state_backend=backend,
        redis_url=redis_url,
        state_ttl_seconds=_coerce_int(os.getenv("STATE_TTL_SECONDS"), name="STATE_TTL_SECONDS"),
        log_root=Path(log_root_raw).expanduser() if log_root_raw else None,
    )
