"""Contracts and schema utilities for foundational services."""

from __future__ import annotations

__all__ = [
    "activity",
]
