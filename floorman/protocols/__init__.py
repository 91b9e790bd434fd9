"""
Floorman Protocols.

Defines interfaces for external system integration.
"""

from floorman.protocols.persistence import DocumentStore
from floorman.protocols.snapshots import (
    DiscrepancyRecord,
    DocumentSnapshot,
    LineSnapshot,
)
from floorman.protocols.source import (
    CountedItem,
    DeclaredItem,
    PlanResult,
    PlanSource,
)
from floorman.protocols.sync import SyncQueue
from floorman.protocols.telemetry import ScanObserver

__all__ = [
    "DocumentStore",
    "DocumentSnapshot",
    "LineSnapshot",
    "DiscrepancyRecord",
    "PlanSource",
    "PlanResult",
    "DeclaredItem",
    "CountedItem",
    "SyncQueue",
    "ScanObserver",
]
