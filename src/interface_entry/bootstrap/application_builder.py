from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.middleware.cors import CORSMiddleware

from business_logic.dialog import ConversationState, UserState
from business_service.access import (
    AccessRequestDialog,
    DialogBot,
    MainDialog,
    Recognizer,
    build_turn_error_handler,
)
from foundational_service.bootstrap import BotSettings, StateBackend, load_settings
from foundational_service.persist import MemoryStorage, RedisStorage, Storage
from interface_entry.bootstrap.health_routes import register_health_routes
from interface_entry.channel.adapter import ChannelAdapter
from interface_entry.http.errors import (
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from interface_entry.http.messages import get_router as get_messages_router
from interface_entry.http.middleware import FastAPIRequestIDMiddleware, LoggingMiddleware
from project_utility.logging import configure_logging

log = logging.getLogger("interface_entry.app")

__all__ = [
    "BotRuntime",
    "build_bot_runtime",
    "build_storage",
    "configure_application",
    "prepare_logging_environment",
]


@dataclass(slots=True)
class BotRuntime:
    """Everything one bot process shares between turns, independent of the channel."""

    settings: BotSettings
    storage: Storage
    conversation_state: ConversationState
    user_state: UserState
    recognizer: Recognizer
    dialog: MainDialog
    bot: DialogBot

    async def aclose(self) -> None:
        if isinstance(self.storage, RedisStorage):
            await self.storage.close()


def _log_startup_step(step: str, description: str, **metadata: Any) -> None:
    log.info("startup.step", extra={"step": step, "description": description, **metadata})


def prepare_logging_environment(settings: BotSettings, *, console: bool = True) -> None:
    configure_logging(log_root=settings.log_root, console=console)


def build_storage(settings: BotSettings) -> Storage:
    if settings.state_backend == StateBackend.REDIS:
        if not settings.redis_url:
            raise RuntimeError("STATE_BACKEND=redis requires REDIS_URL")
        return RedisStorage.from_url(settings.redis_url, ttl_seconds=settings.state_ttl_seconds)
    return MemoryStorage()


def build_bot_runtime(
    settings: BotSettings,
    *,
    storage: Optional[Storage] = None,
    recognizer: Optional[Recognizer] = None,
) -> BotRuntime:
    """Wire storage, state scopes, recognizer and dialogs into a ready-to-run bot."""

    storage = storage if storage is not None else build_storage(settings)
    _log_startup_step("storage.ready", "Bot state storage selected", backend=settings.state_backend)

    conversation_state = ConversationState(storage)
    user_state = UserState(storage)
    if recognizer is None:
        recognizer = Recognizer(settings.luis_application(), slot=settings.luis_slot)
    _log_startup_step(
        "recognizer.ready",
        "Intent recognizer created",
        status="configured" if recognizer.is_configured else "disabled",
    )

    dialog = MainDialog(recognizer, AccessRequestDialog())
    bot = DialogBot(conversation_state, user_state, dialog)
    return BotRuntime(
        settings=settings,
        storage=storage,
        conversation_state=conversation_state,
        user_state=user_state,
        recognizer=recognizer,
        dialog=dialog,
        bot=bot,
    )


def configure_application(
    app: FastAPI,
    *,
    settings: Optional[BotSettings] = None,
    runtime: Optional[BotRuntime] = None,
    adapter: Optional[ChannelAdapter] = None,
    configure_logs: bool = True,
) -> FastAPI:
    settings = settings or (runtime.settings if runtime is not None else load_settings())
    if configure_logs:
        prepare_logging_environment(settings)

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.add_middleware(FastAPIRequestIDMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    runtime = runtime or build_bot_runtime(settings)
    adapter = adapter or ChannelAdapter(on_turn_error=build_turn_error_handler())
    app.state.settings = settings
    app.state.bot_runtime = runtime
    app.state.channel_adapter = adapter

    @asynccontextmanager
    async def lifespan(app_context: FastAPI):
        _log_startup_step("lifespan.start", "Bot listener accepting activities", port=settings.port)
        try:
            yield
        finally:
            await app_context.state.channel_adapter.close()
            await app_context.state.bot_runtime.aclose()
            log.info("shutdown.complete")

    app.router.lifespan_context = lifespan

    _log_startup_step("register_routes", "Registering /api/messages routes")
    app.include_router(get_messages_router())
    register_health_routes(app)
    return app
