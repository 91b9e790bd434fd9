"""
Telemetry Protocol — injected observer for scan and lifecycle events.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ScanObserver(Protocol):
    """Receives named engine events ("scan.line", "scan.rejected", ...)."""

    def on_event(self, name: str, **data: Any) -> None:
        ...
