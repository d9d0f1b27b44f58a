from __future__ import annotations

"""Access-request domain: dialogs, recognizer and the bot that drives them."""

from business_service.access.access_dialog import AccessRequestDialog
from business_service.access.bot import DialogBot, build_turn_error_handler
from business_service.access.main_dialog import MainDialog
from business_service.access.models import REQUEST_TYPE_CHOICES, RequestContext, RequestType
from business_service.access.recognizer import (
    Recognizer,
    RecognizerNotConfiguredError,
    get_project_id,
    parse_request_type,
    top_intent,
)

__all__ = [
    "AccessRequestDialog",
    "DialogBot",
    "MainDialog",
    "REQUEST_TYPE_CHOICES",
    "Recognizer",
    "RecognizerNotConfiguredError",
    "RequestContext",
    "RequestType",
    "build_turn_error_handler",
    "get_project_id",
    "parse_request_type",
    "top_intent",
]
