from __future__ import annotations

"""Per-conversation and per-user bot state backed by a `Storage` implementation.

State is cached on the turn context while a turn runs and written back explicitly with
`save_changes()`. Documents cross the storage boundary as JSON-compatible dictionaries; dataclasses
registered with `state_type` and pydantic models registered with `state_model` are tagged so they
come back as the same Python types on the next turn.
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel

from business_logic.dialog.errors import DialogStateError
from business_logic.dialog.turn_context import TurnContext
from foundational_service.persist.storage import Storage

__all__ = [
    "BotState",
    "ConversationState",
    "StatePropertyAccessor",
    "UserState",
    "decode_state",
    "encode_state",
    "state_model",
    "state_type",
]

log = logging.getLogger(__name__)

T = TypeVar("T")

_TYPE_TAG = "$type"
_MODEL_TAG = "$model"
_STATE_TYPES: Dict[str, type] = {}
_STATE_MODELS: Dict[str, Type[BaseModel]] = {}


def state_type(cls: T) -> T:
    """Register a dataclass so instances survive a round trip through storage."""

    if not is_dataclass(cls):
        raise TypeError(f"state_type() expects a dataclass, got {cls!r}")
    _STATE_TYPES[cls.__name__] = cls  # type: ignore[index]
    return cls


def state_model(cls: T) -> T:
    """Register a pydantic model so instances survive a round trip through storage."""

    _STATE_MODELS[cls.__name__] = cls  # type: ignore[index,assignment]
    return cls


def encode_state(value: Any) -> Any:
    if isinstance(value, BaseModel):
        name = type(value).__name__
        if name not in _STATE_MODELS:
            raise DialogStateError(f"unregistered state model: {name}")
        return {_MODEL_TAG: name, "data": value.model_dump(by_alias=True, exclude_none=True, mode="json")}
    if is_dataclass(value) and not isinstance(value, type):
        name = type(value).__name__
        if name not in _STATE_TYPES:
            raise DialogStateError(f"unregistered state type: {name}")
        document = {field.name: encode_state(getattr(value, field.name)) for field in fields(value)}
        document[_TYPE_TAG] = name
        return document
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(key): encode_state(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_state(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise DialogStateError(f"value of type {type(value).__name__} cannot be stored in bot state")


def decode_state(value: Any) -> Any:
    if isinstance(value, Mapping):
        if _MODEL_TAG in value:
            model = _STATE_MODELS.get(value[_MODEL_TAG])
            if model is None:
                raise DialogStateError(f"unknown state model: {value[_MODEL_TAG]}")
            return model.model_validate(value.get("data") or {})
        decoded = {key: decode_state(item) for key, item in value.items() if key != _TYPE_TAG}
        type_name = value.get(_TYPE_TAG)
        if type_name is None:
            return decoded
        cls = _STATE_TYPES.get(type_name)
        if cls is None:
            raise DialogStateError(f"unknown state type: {type_name}")
        return cls(**decoded)
    if isinstance(value, list):
        return [decode_state(item) for item in value]
    return value


class _CachedBotState:
    __slots__ = ("state", "hash")

    def __init__(self, state: Optional[Dict[str, Any]] = None) -> None:
        self.state: Dict[str, Any] = state if state is not None else {}
        self.hash = self.compute_hash(self.state)

    @property
    def is_changed(self) -> bool:
        return self.hash != self.compute_hash(self.state)

    @staticmethod
    def compute_hash(state: Mapping[str, Any]) -> str:
        return json.dumps(encode_state(state), sort_keys=True, ensure_ascii=False)


class BotState(ABC):
    def __init__(self, storage: Storage, context_service_key: str) -> None:
        if storage is None:
            raise TypeError(f"{type(self).__name__}(): storage is required")
        self._storage = storage
        self._context_service_key = context_service_key

    @abstractmethod
    def get_storage_key(self, turn_context: TurnContext) -> str:
        """Key under which this scope's document lives."""

    def create_property(self, name: str) -> "StatePropertyAccessor":
        if not name:
            raise ValueError("create_property(): name is required")
        return StatePropertyAccessor(self, name)

    def get_cached_state(self, turn_context: TurnContext) -> Optional[_CachedBotState]:
        return turn_context.turn_state.get(self._context_service_key)

    async def load(self, turn_context: TurnContext, force: bool = False) -> None:
        cached = self.get_cached_state(turn_context)
        if cached is not None and not force:
            return
        key = self.get_storage_key(turn_context)
        items = await self._storage.read([key])
        document = items.get(key)
        state = decode_state(document) if document is not None else {}
        turn_context.turn_state[self._context_service_key] = _CachedBotState(state)

    async def save_changes(self, turn_context: TurnContext, force: bool = False) -> None:
        cached = self.get_cached_state(turn_context)
        if cached is None or not (force or cached.is_changed):
            return
        key = self.get_storage_key(turn_context)
        await self._storage.write({key: encode_state(cached.state)})
        cached.hash = cached.compute_hash(cached.state)
        log.debug("bot_state.saved", extra={"backend": key, "status": type(self).__name__})

    async def clear_state(self, turn_context: TurnContext) -> None:
        """Reset the cached state; the empty document is persisted on the next `save_changes`."""

        cached = self.get_cached_state(turn_context)
        hash_before = cached.hash if cached is not None else ""
        fresh = _CachedBotState()
        fresh.hash = hash_before
        turn_context.turn_state[self._context_service_key] = fresh

    async def delete(self, turn_context: TurnContext) -> None:
        turn_context.turn_state.pop(self._context_service_key, None)
        await self._storage.delete([self.get_storage_key(turn_context)])

    async def get_property_value(self, turn_context: TurnContext, name: str) -> Any:
        cached = self.get_cached_state(turn_context)
        if cached is None:
            raise DialogStateError(f"{type(self).__name__}.load() must be called before reading '{name}'")
        return cached.state.get(name)

    async def set_property_value(self, turn_context: TurnContext, name: str, value: Any) -> None:
        cached = self.get_cached_state(turn_context)
        if cached is None:
            raise DialogStateError(f"{type(self).__name__}.load() must be called before writing '{name}'")
        cached.state[name] = value

    async def delete_property_value(self, turn_context: TurnContext, name: str) -> None:
        cached = self.get_cached_state(turn_context)
        if cached is not None:
            cached.state.pop(name, None)


class ConversationState(BotState):
    def __init__(self, storage: Storage) -> None:
        super().__init__(storage, "ConversationState")

    def get_storage_key(self, turn_context: TurnContext) -> str:
        activity = turn_context.activity
        channel_id = activity.channel_id
        conversation_id = activity.conversation.id if activity.conversation else None
        if not channel_id:
            raise DialogStateError("ConversationState: activity.channel_id is missing")
        if not conversation_id:
            raise DialogStateError("ConversationState: activity.conversation.id is missing")
        return f"{channel_id}/conversations/{conversation_id}"


class UserState(BotState):
    def __init__(self, storage: Storage) -> None:
        super().__init__(storage, "UserState")

    def get_storage_key(self, turn_context: TurnContext) -> str:
        activity = turn_context.activity
        channel_id = activity.channel_id
        user_id = activity.from_property.id if activity.from_property else None
        if not channel_id:
            raise DialogStateError("UserState: activity.channel_id is missing")
        if not user_id:
            raise DialogStateError("UserState: activity.from.id is missing")
        return f"{channel_id}/users/{user_id}"


class StatePropertyAccessor:
    """Named slot inside a `BotState` scope."""

    def __init__(self, bot_state: BotState, name: str) -> None:
        self._bot_state = bot_state
        self.name = name

    async def get(
        self,
        turn_context: TurnContext,
        default_value_or_factory: Any = None,
    ) -> Any:
        await self._bot_state.load(turn_context)
        value = await self._bot_state.get_property_value(turn_context, self.name)
        if value is not None or default_value_or_factory is None:
            return value
        if callable(default_value_or_factory):
            default = default_value_or_factory()
        else:
            default = copy.deepcopy(default_value_or_factory)
        await self.set(turn_context, default)
        return default

    async def set(self, turn_context: TurnContext, value: Any) -> None:
        await self._bot_state.load(turn_context)
        await self._bot_state.set_property_value(turn_context, self.name, value)

    async def delete(self, turn_context: TurnContext) -> None:
        await self._bot_state.load(turn_context)
        await self._bot_state.delete_property_value(turn_context, self.name)

