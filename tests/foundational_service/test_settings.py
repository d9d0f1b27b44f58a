from __future__ import annotations

from pathlib import Path

import pytest

from foundational_service.bootstrap import StateBackend, load_settings

_ENV_KEYS = (
    "PORT",
    "port",
    "LuisAppId",
    "LuisAPIKey",
    "LuisAPIHostName",
    "LuisSlot",
    "STATE_BACKEND",
    "REDIS_URL",
    "STATE_TTL_SECONDS",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    # setenv first so teardown also removes anything a .env file adds.
    for key in _ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return tmp_path / "missing.env"


def test_defaults(clean_env: Path) -> None:
    settings = load_settings(env_file=clean_env)

    assert settings.port == 3978
    assert settings.state_backend == StateBackend.MEMORY
    assert settings.luis_slot == "production"
    assert settings.luis_application().is_complete is False


def test_luis_host_gets_https_prefix(clean_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LuisAppId", "app")
    monkeypatch.setenv("LuisAPIKey", "key")
    monkeypatch.setenv("LuisAPIHostName", "westus.api.cognitive.microsoft.com")
    monkeypatch.setenv("port", "4000")

    settings = load_settings(env_file=clean_env)

    assert settings.port == 4000
    assert settings.luis_endpoint == "https://westus.api.cognitive.microsoft.com"
    assert settings.luis_application().is_complete is True


def test_dotenv_file_is_loaded(clean_env: Path, tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("PORT=5001\nLuisSlot=staging\n", encoding="utf-8")

    settings = load_settings(env_file=env_file)

    assert settings.port == 5001
    assert settings.luis_slot == "staging"


@pytest.mark.parametrize(
    ("key", "value"),
    [("PORT", "eighty"), ("STATE_BACKEND", "mongo"), ("STATE_TTL_SECONDS", "soon")],
)
def test_invalid_values_raise(clean_env: Path, monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(RuntimeError):
        load_settings(env_file=clean_env)


def test_redis_backend_requires_url(clean_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATE_BACKEND", "redis")
    with pytest.raises(RuntimeError):
        load_settings(env_file=clean_env)

    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    settings = load_settings(env_file=clean_env)
    assert settings.state_backend == StateBackend.REDIS
    assert settings.redis_url == "redis://localhost:6379/0"
