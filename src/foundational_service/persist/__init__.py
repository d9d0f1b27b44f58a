"""State storage for the foundational service layer."""

from __future__ import annotations

from .storage import MemoryStorage, RedisStorage, Storage

__all__ = ["MemoryStorage", "RedisStorage", "Storage"]
