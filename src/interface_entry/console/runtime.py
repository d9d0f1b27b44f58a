from __future__ import annotations

"""Run the bot against the terminal instead of the HTTP listener."""

import logging
from typing import Optional, TextIO

from business_service.access import build_turn_error_handler
from foundational_service.bootstrap import BotSettings
from interface_entry.bootstrap.application_builder import build_bot_runtime
from interface_entry.console.adapter import ConsoleAdapter

__all__ = ["run_console"]

log = logging.getLogger(__name__)


async def run_console(
    settings: BotSettings,
    *,
    input_stream: Optional[TextIO] = None,
    output: Optional[TextIO] = None,
) -> None:
    runtime = build_bot_runtime(settings)
    adapter = ConsoleAdapter(on_turn_error=build_turn_error_handler(), output=output)
    log.info("console.listen", extra={"channel_id": adapter.reference.channel_id, "backend": settings.state_backend})
    try:
        await adapter.listen(runtime.bot, input_stream)
    finally:
        await runtime.aclose()
        log.info("console.closed", extra={"status": "eof"})
