"""
Noop Observer — telemetry stub for development and testing.

Usage in settings.py (the default):
    FLOORMAN = {
        "OBSERVER": "floorman.adapters.noop.NoopObserver",
    }
"""

from __future__ import annotations

from typing import Any


class NoopObserver:
    """Implements the ScanObserver protocol and drops every event."""

    def on_event(self, name: str, **data: Any) -> None:
        return None


class RecordingObserver:
    """Keeps every event in memory; handy in tests and the shell."""

    def __init__(self):
        self.events: list[tuple[str, dict[str, Any]]] = []

    def on_event(self, name: str, **data: Any) -> None:
        self.events.append((name, data))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]
