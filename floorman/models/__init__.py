"""
Floorman Models.

Local cache of warehouse floor documents:
- Document: header with cached counters
- Line: plan/fact row
- SyncAction: outbox of committed mutations
"""

from floorman.models.document import Document
from floorman.models.enums import (
    DONE_LINE_STATUSES,
    DiscrepancyKind,
    DocumentStatus,
    DocumentType,
    InventoryScope,
    LineStatus,
    ReturnKind,
    RouteStepStatus,
    SyncActionType,
)
from floorman.models.line import Line
from floorman.models.sync_action import SyncAction

__all__ = [
    'DocumentType',
    'DocumentStatus',
    'LineStatus',
    'DONE_LINE_STATUSES',
    'RouteStepStatus',
    'DiscrepancyKind',
    'SyncActionType',
    'InventoryScope',
    'ReturnKind',
    'Document',
    'Line',
    'SyncAction',
]
