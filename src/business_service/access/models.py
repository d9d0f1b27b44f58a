from __future__ import annotations

"""Access-request domain data: request types, the per-dialog context and canned replies."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from business_logic.dialog import Choice, state_type

__all__ = [
    "ACCESS_DIALOG_ID",
    "LUIS_NOT_CONFIGURED_MESSAGE",
    "MAIN_DIALOG_ID",
    "PROJECT_ID_PROMPT",
    "REQUEST_TYPE_CHOICES",
    "REQUEST_TYPE_PROMPT",
    "RESTART_MESSAGE",
    "REVALIDATION_CONFIRMATION",
    "RequestContext",
    "RequestType",
    "VERIFYING_MESSAGE",
    "WELCOME_PROMPT",
    "acknowledgement_for",
    "didnt_understand_message",
]

MAIN_DIALOG_ID = "MainDialog"
ACCESS_DIALOG_ID = "accessRequestDialog"

PROJECT_ID_PROMPT = "Enter Project ID :"
REQUEST_TYPE_PROMPT = "Please enter your type of request."
VERIFYING_MESSAGE = "We are verifying your request... Please be patient."
WELCOME_PROMPT = "What can I help you with today?"
RESTART_MESSAGE = "What else can I do for you?"
LUIS_NOT_CONFIGURED_MESSAGE = (
    "NOTE: LUIS is not configured. To enable all capabilities, add `LuisAppId`, `LuisAPIKey` "
    "and `LuisAPIHostName` to the .env file."
)
REVALIDATION_CONFIRMATION = (
    "Dear User, your service request for revalidation of the security assessment project has been received and is being\n"
    "processed. You will be notified via email once the process is complete. You can also monitor the status of the process\n"
    "at the Project Details Dashboard. Thank you for your patience."
)


class RequestType(str, Enum):
    """Kinds of access request; each value is the canonical label offered in the choice prompt."""

    ACCESS_TRACKER = "Tracker"
    ACCESS_REPORT = "Report"
    TRACKER_STATUS = "Tracker Status"
    REPORT_STATUS = "Report Status"
    REQUEST_REVALIDATION = "Revalidation"

    @classmethod
    def parse(cls, value: Any) -> Optional["RequestType"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        for member in cls:
            if value == member.value or value == member.name:
                return member
        return None


REQUEST_TYPE_CHOICES: List[Choice] = [
    Choice(value=RequestType.ACCESS_REPORT.value, synonyms=["report", "access report"]),
    Choice(value=RequestType.ACCESS_TRACKER.value, synonyms=["tracker", "access tracker"]),
    Choice(value=RequestType.REPORT_STATUS.value, synonyms=["request report status", "report status"]),
    Choice(value=RequestType.TRACKER_STATUS.value, synonyms=["tracker status", "request tracker status"]),
    Choice(
        value=RequestType.REQUEST_REVALIDATION.value,
        synonyms=["revalidation", "request revalidation", "access revalidation"],
    ),
]


def acknowledgement_for(request_type: Any) -> Optional[str]:
    """The single acknowledgement sent for a known request type, or None."""

    member = RequestType.parse(request_type)
    if member is None:
        return None
    return f"Testing {member.name}"


def didnt_understand_message(intent: str) -> str:
    return f"Sorry, I didn't get that. Please try asking in a different way (intent was {intent})"


@state_type
@dataclass(slots=True)
class RequestContext:
    cust_project_id: Optional[str] = None
    request_type: Optional[Union[RequestType, str]] = None

    def __post_init__(self) -> None:
        member = RequestType.parse(self.request_type)
        if member is not None:
            self.request_type = member

    def to_dict(self) -> Dict[str, Any]:
        request_type = self.request_type.value if isinstance(self.request_type, RequestType) else self.request_type
        return {"cust_project_id": self.cust_project_id, "request_type": request_type}

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "RequestContext":
        payload = payload or {}
        return cls(
            cust_project_id=payload.get("cust_project_id"),
            request_type=payload.get("request_type"),
        )
