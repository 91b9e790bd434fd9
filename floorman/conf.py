"""
Floorman configuration.

Usage in settings.py:
    FLOORMAN = {
        "STORE": "floorman.adapters.orm.OrmDocumentStore",
        "SYNC_QUEUE": "floorman.adapters.orm.OutboxSyncQueue",
        "PLAN_SOURCES": ["myproject.odata.ODataPlanSource"],
        "DEMO_MODE": True,
        "COMPLETION_COOLDOWN_MS": 1000,
        "POLICY_OVERRIDES": {"picking": {"auto_advance": False}},
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class FloormanSettings:
    """Floorman configuration settings."""

    # Persistence contract implementation (dotted path)
    STORE: str = "floorman.adapters.orm.OrmDocumentStore"

    # Sync queue contract implementation (dotted path)
    SYNC_QUEUE: str = "floorman.adapters.orm.OutboxSyncQueue"

    # Remote plan sources, tried in order after the local cache
    PLAN_SOURCES: list[str] = field(default_factory=list)

    # Append the demo source as last fallback
    DEMO_MODE: bool = False

    # Telemetry collaborator (dotted path)
    OBSERVER: str = "floorman.adapters.noop.NoopObserver"

    # Duplicate-scan window after a line reaches its plan
    COMPLETION_COOLDOWN_MS: int = 1000

    # Delay before a finished picking step auto-advances
    AUTO_ADVANCE_DELAY_MS: int = 800

    # Placement zone inference
    ZONE_HISTORY_SIZE: int = 10
    ZONE_WINDOW: int = 5
    ZONE_MIN_HISTORY: int = 3
    CROSS_ZONE_DISTANCE: int = 100

    # Pending product names returned with a not-found rejection
    NOT_FOUND_HINTS: int = 3

    # Per document type policy flag overrides
    POLICY_OVERRIDES: dict[str, dict[str, Any]] = field(default_factory=dict)

    # Create the placement document as soon as receiving completes
    CREATE_FOLLOW_ON: bool = True


def get_floorman_settings() -> FloormanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "FLOORMAN", {})
    return FloormanSettings(**{
        k: v for k, v in user_settings.items()
        if k in FloormanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_floorman_settings(), name)


floorman_settings = _LazySettings()
