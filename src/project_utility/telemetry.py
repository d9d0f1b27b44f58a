from __future__ import annotations

"""
Telemetry events for the bot process.

Each event is a flat record (`event_type`, `level`, `timestamp`, request/conversation ids and a
`payload` mapping). Events are fanned out to a JSONL file rendered through structlog once
`setup_telemetry()` has run, to a Rich summary on stderr at or above the console threshold, and to
in-process subscribers.
"""

import json
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import structlog
from rich.console import Console
from rich.table import Table
from rich.text import Text

from project_utility.config.paths import get_log_root
from project_utility.context import ContextBridge

TELEMETRY_FILENAME = "access-bot-telemetry.jsonl"

_LEVEL_ORDER = {"debug": 10, "info": 20, "warning": 30, "error": 40, "critical": 50}
_SUMMARY_FIELDS = ("request_id", "conversation_id", "dialog_id", "span")
_PREVIEW_FIELDS = ("text", "intent", "error")

TelemetrySubscriber = Callable[[Mapping[str, Any]], None]


def _rank(level: str) -> int:
    return _LEVEL_ORDER.get(level.lower(), 20)


def _preview(value: str, *, length: int = 160) -> str:
    return value if len(value) <= length else value[: length - 3] + "..."


@dataclass(slots=True)
class TelemetryConfig:
    console_level: str = "warning"
    file_level: str = "debug"
    event_prefixes: Tuple[str, ...] = ()

    @classmethod
    def from_env(cls) -> "TelemetryConfig":
        prefixes = tuple(
            prefix.strip() for prefix in (os.getenv("TELEMETRY_EVENT_FILTER") or "").split(",") if prefix.strip()
        )
        return cls(
            console_level=os.getenv("TELEMETRY_CONSOLE_LEVEL", "warning").lower(),
            file_level=os.getenv("TELEMETRY_FILE_LEVEL", "debug").lower(),
            event_prefixes=prefixes,
        )

    def accepts(self, event_type: str) -> bool:
        if not self.event_prefixes:
            return True
        return event_type.startswith(self.event_prefixes)


class _JsonlSink:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._renderer = structlog.processors.JSONRenderer(ensure_ascii=False, default=str)

    def write(self, event: Mapping[str, Any]) -> None:
        line = self._renderer(None, "", dict(event))
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


class _ConsoleSink:
    _STYLES = {
        "DEBUG": "dim",
        "INFO": "bold cyan",
        "WARNING": "yellow",
        "ERROR": "bold red",
        "CRITICAL": "bold white on red",
    }

    def __init__(self) -> None:
        self._console = Console(stderr=True)

    def write(self, event: Mapping[str, Any]) -> None:
        level = str(event.get("level", "info")).upper()
        payload: Mapping[str, Any] = event.get("payload") or {}

        summary = [f"{key}={event[key]}" for key in _SUMMARY_FIELDS if event.get(key)]
        if payload.get("duration_ms") is not None:
            summary.append(f"duration={payload['duration_ms']}ms")
        if payload.get("status_code") is not None:
            summary.append(f"status={payload['status_code']}")

        grid = Table.grid(padding=(0, 1))
        grid.add_row(
            Text(f"[{level}] {event.get('event_type')}", style=self._STYLES.get(level, "white")),
            Text(str(event.get("timestamp", "")), style="dim"),
        )
        grid.add_row(" ".join(summary) or "-")
        previews = []
        for name in _PREVIEW_FIELDS:
            value = payload.get(name)
            if isinstance(value, str) and value:
                previews.append(f"{name}={_preview(value)}")
        if previews:
            grid.add_row("\n".join(previews))
        self._console.print(grid)


@dataclass
class TelemetryEmitter:
    config: TelemetryConfig = field(default_factory=TelemetryConfig.from_env)
    _file_sink: Optional[_JsonlSink] = None
    _console_sink: _ConsoleSink = field(default_factory=_ConsoleSink)
    _subscribers: List[TelemetrySubscriber] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @property
    def file_path(self) -> Optional[Path]:
        return self._file_sink.path if self._file_sink is not None else None

    def configure(self, *, log_root: Optional[Path] = None, config: Optional[TelemetryConfig] = None) -> None:
        if config is not None:
            self.config = config
        root = (log_root or get_log_root()).resolve()
        self._file_sink = _JsonlSink(root / TELEMETRY_FILENAME)

    def subscribe(self, callback: TelemetrySubscriber) -> Callable[[], None]:
        """Deliver every accepted event to `callback`; returns a function that removes it again."""

        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def emit(
        self,
        event_type: str,
        *,
        level: str = "info",
        payload: Optional[Mapping[str, Any]] = None,
        sensitive: Optional[Sequence[str]] = None,
        **fields: Any,
    ) -> None:
        if not self.config.accepts(event_type):
            return
        event_level = level.lower()
        fields.setdefault("request_id", ContextBridge.request_id())
        conversation_id = ContextBridge.conversation_id()
        if conversation_id:
            fields.setdefault("conversation_id", conversation_id)
        event: Dict[str, Any] = {
            "event_type": event_type,
            "level": event_level,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **fields,
            "payload": dict(payload or {}),
            "sensitive": list(dict.fromkeys(sensitive or [])),
        }

        if self._file_sink is not None and _rank(event_level) >= _rank(self.config.file_level):
            self._file_sink.write(event)
        if _rank(event_level) >= _rank(self.config.console_level):
            self._console_sink.write({**event, "payload": self._masked(event["payload"], event["sensitive"])})
        self._publish(event)

    @staticmethod
    def _masked(payload: Mapping[str, Any], sensitive: Sequence[str]) -> Dict[str, Any]:
        masked = dict(payload)
        for key in sensitive:
            value = payload.get(key)
            if value is not None:
                masked[key] = _preview(str(value))
        return masked

    def _publish(self, event: Mapping[str, Any]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        if not subscribers:
            return
        snapshot = json.loads(json.dumps(event, ensure_ascii=False, default=str))
        for callback in subscribers:
            callback(snapshot)


_EMITTER: Optional[TelemetryEmitter] = None
_EMITTER_LOCK = threading.Lock()


def get_telemetry() -> TelemetryEmitter:
    global _EMITTER
    if _EMITTER is None:
        with _EMITTER_LOCK:
            if _EMITTER is None:
                _EMITTER = TelemetryEmitter()
    return _EMITTER


def setup_telemetry(log_root: Optional[Path] = None) -> None:
    get_telemetry().configure(log_root=log_root)


def emit(event_type: str, **kwargs: Any) -> None:
    get_telemetry().emit(event_type, **kwargs)


def subscribe(callback: TelemetrySubscriber) -> Callable[[], None]:
    return get_telemetry().subscribe(callback)


__all__ = [
    "TELEMETRY_FILENAME",
    "TelemetryConfig",
    "TelemetryEmitter",
    "emit",
    "get_telemetry",
    "setup_telemetry",
    "subscribe",
]
