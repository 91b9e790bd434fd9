"""
Sync Queue Protocol — offline action log owned by an external uploader.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from floorman.models.enums import SyncActionType


@runtime_checkable
class SyncQueue(Protocol):
    """
    Called after every committed mutation.

    Retry, backoff and ordering belong to the implementation.
    """

    def enqueue(self, action_type: SyncActionType, payload: dict[str, Any]) -> None:
        ...
