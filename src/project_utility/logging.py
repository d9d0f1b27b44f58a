"""
Structured logging helpers backed by Rich.

`configure_logging()` renders info-level records as a compact line plus a metadata tree, routes
warnings and errors through a de-duplicating alert handler, and mirrors everything into rotating
files under the log root.
"""

from __future__ import annotations

import logging
import threading
import time
import traceback
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rich.console import Console
from rich.text import Text

from project_utility.config.paths import get_log_root
from project_utility.context import ContextBridge
from project_utility.telemetry import setup_telemetry

_INFO_LOG_FILENAME = "access-bot-info.log"
_ERROR_LOG_FILENAME = "access-bot-error.log"

_workspace_lock = threading.RLock()
_configured_root: Optional[Path] = None

_ALERT_WINDOW_SECONDS = 60.0
_FILE_MAX_BYTES = 2 * 1024 * 1024
_FILE_BACKUPS = 10

_EXTRA_KEYS = (
    "conversation_id",
    "channel_id",
    "activity_type",
    "dialog_id",
    "step",
    "intent",
    "request_type",
    "status",
    "status_code",
    "latency_ms",
    "backend",
)


def _record_metadata(record: logging.LogRecord) -> List[Tuple[str, str, str]]:
    """`(key, value, style)` rows for the tree printed under a console line."""

    rows: List[Tuple[str, str, str]] = []
    for key in _EXTRA_KEYS:
        value = getattr(record, key, None)
        if value in (None, "", [], {}, ()):
            continue
        rows.append((key, str(value), "white"))
    if record.exc_info:
        rows.append(("error", "".join(traceback.format_exception(*record.exc_info)).rstrip(), "italic red"))
    elif getattr(record, "error", None) is not None:
        rows.append(("error", str(record.error), "italic red"))
    return rows


class _RichRecordHandler(logging.Handler):
    """Renders `HH:MM:SS LEVEL [logger] message` followed by a metadata tree."""

    time_format = "%H:%M:%S"

    def __init__(self, console: Console, *, level: int) -> None:
        super().__init__(level=level)
        self._console = console
        self.setFormatter(logging.Formatter("%(message)s"))

    def render(self, record: logging.LogRecord, message: str, *, level_style: str, message_style: str = "") -> Text:
        line = Text()
        stamp = datetime.fromtimestamp(record.created).strftime(self.time_format)
        line.append(stamp, style="dim")
        line.append(" ")
        line.append(f"{record.levelname:<8}", style=level_style)
        line.append(f" [{record.name}] ", style="bold white")
        line.append(message, style=message_style)
        rows = _record_metadata(record)
        for index, (key, value, style) in enumerate(rows):
            last = index == len(rows) - 1
            indent = "            " if last else "    │       "
            line.append("\n")
            line.append(f"    {'└──' if last else '├──'} {key}: ", style="dim")
            line.append(value.replace("\n", "\n" + indent), style=style)
        return line


class _RichConsoleHandler(_RichRecordHandler):
    time_format = "%H:%M:%S.%f"

    def __init__(self, console: Console) -> None:
        super().__init__(console, level=logging.INFO)

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno >= logging.WARNING:
            return
        try:
            line = self.render(record, self.format(record), level_style="bold cyan")
            self._console.print(line)
        except Exception:
            self.handleError(record)


class _RichAlertHandler(_RichRecordHandler):
    """Warnings and errors; repeats of the same alert within the window are counted, not printed."""

    def __init__(self, console: Console, *, window_seconds: float = _ALERT_WINDOW_SECONDS) -> None:
        super().__init__(console, level=logging.WARNING)
        self._window = window_seconds
        self._seen: Dict[str, Tuple[float, int]] = {}

    def emit(self, record: logging.LogRecord) -> None:
        try:
            suppressed = self._admit(f"{record.name}|{record.getMessage()}|{getattr(record, 'conversation_id', '')}")
            if suppressed is None:
                return
            message = self.format(record)
            if suppressed:
                message = f"{message} (+{suppressed} suppressed)"
            style = "yellow" if record.levelno < logging.ERROR else "red"
            self._console.print(self.render(record, message, level_style=f"bold {style}", message_style=style))
        except Exception:
            self.handleError(record)

    def _admit(self, key: str) -> Optional[int]:
        now = time.monotonic()
        first_seen, count = self._seen.get(key, (None, 0))
        if first_seen is not None and now - first_seen < self._window:
            self._seen[key] = (first_seen, count + 1)
            return None
        self._seen[key] = (now, 0)
        return count


class _LevelRangeFilter(logging.Filter):
    def __init__(self, max_level: int) -> None:
        super().__init__()
        self._max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self._max_level


class _ContextFilter(logging.Filter):
    """Stamp request and conversation identifiers onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = ContextBridge.request_id()
        if not getattr(record, "conversation_id", None):
            record.conversation_id = ContextBridge.conversation_id() or "-"
        return True


def _build_file_handler(path: Path, *, min_level: int, max_level: Optional[int] = None) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=_FILE_MAX_BYTES, backupCount=_FILE_BACKUPS, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s conv=%(conversation_id)s] :: %(message)s",
            "%Y-%m-%d %H:%M:%S",
        )
    )
    handler.setLevel(min_level)
    if max_level is not None:
        handler.addFilter(_LevelRangeFilter(max_level))
    return handler


def configure_logging(
    *,
    log_root: Optional[Path] = None,
    console: bool = True,
    level: int = logging.INFO,
) -> None:
    """
    Configure structured logging for the bot process.

    Console rendering goes to stderr so the console channel keeps stdout for the conversation.
    """

    global _configured_root
    with _workspace_lock:
        root = (log_root or get_log_root()).resolve()
        root.mkdir(parents=True, exist_ok=True)
        logging.captureWarnings(True)
        setup_telemetry(log_root=root)

        handlers: List[logging.Handler] = []
        if console:
            rich_console = Console(stderr=True)
            handlers.append(_RichConsoleHandler(rich_console))
            handlers.append(_RichAlertHandler(rich_console))
        handlers.append(_build_file_handler(root / _INFO_LOG_FILENAME, min_level=logging.DEBUG, max_level=logging.INFO))
        handlers.append(_build_file_handler(root / _ERROR_LOG_FILENAME, min_level=logging.WARNING))
        context_filter = _ContextFilter()
        for handler in handlers:
            handler.addFilter(context_filter)

        logging.basicConfig(level=level, handlers=handlers, force=True)
        _configured_root = root

    logging.getLogger("project_utility.logging").info(
        "logging.configured",
        extra={"status": "ok", "backend": str(root)},
    )


def finalize_logging(*, reason: str = "shutdown") -> None:
    """Flush and close all logging handlers."""

    with _workspace_lock:
        if _configured_root is None:
            return
        logging.getLogger("project_utility.logging").info("logging.finalized", extra={"status": reason})
        logging.shutdown()


__all__ = ["configure_logging", "finalize_logging"]
