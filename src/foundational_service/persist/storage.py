from __future__ import annotations

"""Key/value storage for per-conversation bot state."""

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Sequence

from redis.asyncio import Redis

__all__ = ["MemoryStorage", "RedisStorage", "Storage"]

log = logging.getLogger(__name__)


class Storage(ABC):
    """Async document store keyed by state key (e.g. ``console/conversations/convo1``)."""

    @abstractmethod
    async def read(self, keys: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        """Return the documents found for `keys`; missing keys are absent from the result."""

    @abstractmethod
    async def write(self, changes: Mapping[str, Mapping[str, Any]]) -> None:
        """Upsert every document in `changes`."""

    @abstractmethod
    async def delete(self, keys: Sequence[str]) -> None:
        """Remove the documents for `keys`; unknown keys are ignored."""


class MemoryStorage(Storage):
    """Process-local storage; documents are deep-copied in and out so callers never share state."""

    def __init__(self, initial: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._memory: Dict[str, Dict[str, Any]] = {
            key: copy.deepcopy(dict(value)) for key, value in (initial or {}).items()
        }

    async def read(self, keys: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        if keys is None:
            raise ValueError("MemoryStorage.read(): keys are required")
        return {key: copy.deepcopy(self._memory[key]) for key in keys if key in self._memory}

    async def write(self, changes: Mapping[str, Mapping[str, Any]]) -> None:
        if changes is None:
            raise ValueError("MemoryStorage.write(): changes are required")
        for key, document in changes.items():
            self._memory[key] = copy.deepcopy(dict(document))

    async def delete(self, keys: Sequence[str]) -> None:
        for key in keys:
            self._memory.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._memory

    def __len__(self) -> int:
        return len(self._memory)


class RedisStorage(Storage):
    """JSON documents stored as Redis strings under a namespace."""

    def __init__(
        self,
        client: Redis,
        *,
        namespace: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self._redis = client
        self._namespace = namespace or os.getenv("STATE_NAMESPACE", "access-bot:state")
        self._ttl = ttl_seconds if ttl_seconds and ttl_seconds > 0 else None

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisStorage":
        return cls(Redis.from_url(url, decode_responses=True), **kwargs)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def read(self, keys: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        if not keys:
            return {}
        raw_values = await self._redis.mget([self._key(key) for key in keys])
        documents: Dict[str, Dict[str, Any]] = {}
        for key, raw in zip(keys, raw_values):
            if raw is None:
                continue
            documents[key] = json.loads(raw)
        return documents

    async def write(self, changes: Mapping[str, Mapping[str, Any]]) -> None:
        if not changes:
            return
        async with self._redis.pipeline(transaction=True) as pipe:
            for key, document in changes.items():
                pipe.set(self._key(key), json.dumps(document, ensure_ascii=False), ex=self._ttl)
            await pipe.execute()
        log.debug("storage.redis.write", extra={"status": "ok", "backend": self._namespace})

    async def delete(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        await self._redis.delete(*[self._key(key) for key in keys])

    async def close(self) -> None:
        await self._redis.aclose()
