from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from fastapi import FastAPI

from foundational_service.bootstrap import BotSettings, load_settings
from interface_entry.bootstrap.application_builder import configure_application, prepare_logging_environment
from project_utility.logging import finalize_logging

log = logging.getLogger("interface_entry.app")

CLI_DESCRIPTION = "Access request bot"

app: Optional[FastAPI] = None


def create_app(settings: Optional[BotSettings] = None) -> FastAPI:
    fastapi_app = FastAPI(title="Access Request Bot", version="1.0.0")
    configure_application(fastapi_app, settings=settings)
    return fastapi_app


def configure_arg_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="bind address (default 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="listen port (default: PORT / port from the environment, else 3978)",
    )
    parser.add_argument(
        "--console",
        action="store_true",
        help="talk to the bot on stdin/stdout instead of starting the HTTP listener",
    )


def handle_cli(args: argparse.Namespace) -> None:
    global app  # type: ignore[assignment]
    try:
        settings = load_settings()
    except RuntimeError as exc:
        log.critical("Startup aborted: %s", exc)
        raise

    if getattr(args, "console", False):
        from interface_entry.console.runtime import run_console

        # Console output owns stdout; logs stay in the files.
        prepare_logging_environment(settings, console=False)
        try:
            asyncio.run(run_console(settings))
        finally:
            finalize_logging(reason="console")
        return

    app = create_app(settings)

    import uvicorn

    port = getattr(args, "port", None) or settings.port
    log.info("startup.listen", extra={"status": "ready", "port": port})
    try:
        uvicorn.run(
            app,
            host=getattr(args, "host", "0.0.0.0"),
            port=port,
            log_config=None,
        )
    finally:
        finalize_logging(reason="server")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description=CLI_DESCRIPTION)
    configure_arg_parser(parser)
    args = parser.parse_args(argv)
    handle_cli(args)


__all__ = ["CLI_DESCRIPTION", "app", "configure_arg_parser", "create_app", "handle_cli", "main"]
