"""Activity schema for the messaging channel protocol.

Inbound webhook payloads, streaming frames, console lines and every outbound reply are all
represented as `Activity` models. Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from project_utility.clock import utc_now

__all__ = [
    "Activity",
    "ActivityTypes",
    "Attachment",
    "ChannelAccount",
    "ConversationAccount",
    "ConversationReference",
    "DeliveryModes",
    "InputHints",
    "ResourceResponse",
    "text_activity",
    "trace_activity",
]


class ActivityTypes:
    MESSAGE = "message"
    CONVERSATION_UPDATE = "conversationUpdate"
    TYPING = "typing"
    END_OF_CONVERSATION = "endOfConversation"
    EVENT = "event"
    TRACE = "trace"
    DELAY = "delay"


class InputHints:
    ACCEPTING_INPUT = "acceptingInput"
    IGNORING_INPUT = "ignoringInput"
    EXPECTING_INPUT = "expectingInput"


class DeliveryModes:
    NORMAL = "normal"
    EXPECT_REPLIES = "expectReplies"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ChannelAccount(_WireModel):
    id: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


class ConversationAccount(_WireModel):
    id: Optional[str] = None
    name: Optional[str] = None
    is_group: Optional[bool] = None
    conversation_type: Optional[str] = None
    tenant_id: Optional[str] = None


class Attachment(_WireModel):
    content_type: Optional[str] = None
    content_url: Optional[str] = None
    content: Any = None
    name: Optional[str] = None
    thumbnail_url: Optional[str] = None


class ConversationReference(_WireModel):
    activity_id: Optional[str] = None
    user: Optional[ChannelAccount] = None
    bot: Optional[ChannelAccount] = None
    conversation: Optional[ConversationAccount] = None
    channel_id: Optional[str] = None
    service_url: Optional[str] = None
    locale: Optional[str] = None


class ResourceResponse(_WireModel):
    id: Optional[str] = None


class Activity(_WireModel):
    type: Optional[str] = None
    id: Optional[str] = None
    timestamp: Optional[datetime] = None
    local_timestamp: Optional[datetime] = None
    service_url: Optional[str] = None
    channel_id: Optional[str] = None
    from_property: Optional[ChannelAccount] = Field(default=None, alias="from")
    conversation: Optional[ConversationAccount] = None
    recipient: Optional[ChannelAccount] = None
    text: Optional[str] = None
    speak: Optional[str] = None
    input_hint: Optional[str] = None
    locale: Optional[str] = None
    attachments: Optional[List[Attachment]] = None
    entities: Optional[List[Dict[str, Any]]] = None
    members_added: Optional[List[ChannelAccount]] = None
    members_removed: Optional[List[ChannelAccount]] = None
    reply_to_id: Optional[str] = None
    delivery_mode: Optional[str] = None
    name: Optional[str] = None
    label: Optional[str] = None
    value_type: Optional[str] = None
    value: Any = None
    channel_data: Any = None

    def get_conversation_reference(self) -> ConversationReference:
        return ConversationReference(
            activity_id=self.id,
            user=self.from_property,
            bot=self.recipient,
            conversation=self.conversation,
            channel_id=self.channel_id,
            service_url=self.service_url,
            locale=self.locale,
        )

    def apply_conversation_reference(
        self,
        reference: ConversationReference,
        *,
        is_incoming: bool = False,
    ) -> "Activity":
        """Address this activity using `reference`; returns self for chaining."""

        self.channel_id = reference.channel_id
        self.service_url = reference.service_url
        self.conversation = reference.conversation
        if reference.locale is not None:
            self.locale = reference.locale
        if is_incoming:
            self.from_property = reference.user
            self.recipient = reference.bot
            if reference.activity_id is not None:
                self.id = reference.activity_id
        else:
            self.from_property = reference.bot
            self.recipient = reference.user
            if reference.activity_id is not None:
                self.reply_to_id = reference.activity_id
        return self

    def expects_replies(self) -> bool:
        return self.delivery_mode == DeliveryModes.EXPECT_REPLIES


def text_activity(
    text: str,
    speak: Optional[str] = None,
    input_hint: Optional[str] = InputHints.ACCEPTING_INPUT,
    attachments: Optional[List[Attachment]] = None,
) -> Activity:
    """Build an outbound message activity."""

    return Activity(
        type=ActivityTypes.MESSAGE,
        text=text,
        speak=speak,
        input_hint=input_hint,
        attachments=attachments,
    )


def trace_activity(name: str, value: Any = None, value_type: Optional[str] = None, label: Optional[str] = None) -> Activity:
    return Activity(
        type=ActivityTypes.TRACE,
        timestamp=utc_now(),
        name=name,
        label=label,
        value_type=value_type,
        value=value,
    )
