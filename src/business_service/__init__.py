from __future__ import annotations

"""Business Service layer entrypoints."""

from business_service.access import AccessRequestDialog, DialogBot, MainDialog, Recognizer

__all__ = [
    "AccessRequestDialog",
    "DialogBot",
    "MainDialog",
    "Recognizer",
]
