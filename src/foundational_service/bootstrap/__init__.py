"""Process bootstrap helpers (settings)."""

from __future__ import annotations

from .settings import BotSettings, StateBackend, load_settings

__all__ = ["BotSettings", "StateBackend", "load_settings"]
