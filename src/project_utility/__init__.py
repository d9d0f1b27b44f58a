"""
Project utility layer: reusable infrastructure primitives shared across the bot.

This package depends only on the Python standard library and vetted third-party libraries (Rich
for console logging, structlog for telemetry) so higher layers can import helpers without pulling
in dialog or channel code.
"""

from __future__ import annotations

from .clock import ensure_utc, utc_iso, utc_now
from .context import ContextBridge
from .logging import configure_logging, finalize_logging
from .tracing import TraceSpan, current_span, trace_span

__all__ = [
    "ContextBridge",
    "TraceSpan",
    "configure_logging",
    "current_span",
    "ensure_utc",
    "finalize_logging",
    "trace_span",
    "utc_iso",
    "utc_now",
]
