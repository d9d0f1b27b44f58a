from __future__ import annotations

"""Exceptions raised by the dialog runtime."""

__all__ = [
    "DialogError",
    "DialogNotFoundError",
    "DialogStateError",
    "WaterfallStepError",
]


class DialogError(RuntimeError):
    """Base class for dialog runtime failures."""


class DialogNotFoundError(DialogError):
    def __init__(self, dialog_id: str) -> None:
        self.dialog_id = dialog_id
        super().__init__(f"dialog not found: {dialog_id!r}")


class DialogStateError(DialogError):
    """Raised when dialog state is missing or cannot be (de)serialised."""


class WaterfallStepError(DialogError):
    """Raised when a waterfall step neither prompts, continues, nor ends the dialog."""
