from __future__ import annotations

"""Business Logic layer entrypoints."""

from business_logic.dialog import ComponentDialog, ConversationState, DialogSet, TurnContext, UserState, WaterfallDialog

__all__ = [
    "ComponentDialog",
    "ConversationState",
    "DialogSet",
    "TurnContext",
    "UserState",
    "WaterfallDialog",
]
