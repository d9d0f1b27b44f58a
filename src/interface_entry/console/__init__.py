from __future__ import annotations

from interface_entry.console.adapter import DEFAULT_CONSOLE_REFERENCE, ConsoleAdapter
from interface_entry.console.runtime import run_console

__all__ = ["ConsoleAdapter", "DEFAULT_CONSOLE_REFERENCE", "run_console"]
