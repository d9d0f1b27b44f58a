"""Foundational Service Layer top-level package."""

from __future__ import annotations

__all__ = [
    "bootstrap",
    "contracts",
    "integrations",
    "persist",
]
