"""
Floorman Adapters.

Implementations of protocols for external systems, and the loaders that
pick them from settings.

Usage:
    from floorman.adapters import get_store, get_sync_queue

    store = get_store()
    store.get('receiving', 'RCV-001')

Settings:
    FLOORMAN = {
        "STORE": "floorman.adapters.orm.OrmDocumentStore",
        "SYNC_QUEUE": "floorman.adapters.orm.OutboxSyncQueue",
        "PLAN_SOURCES": ["myproject.odata.ODataPlanSource"],
        "DEMO_MODE": False,
        "OBSERVER": "floorman.adapters.noop.NoopObserver",
    }
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from floorman.conf import floorman_settings

logger = logging.getLogger(__name__)

DEMO_SOURCE = "floorman.adapters.demo.DemoPlanSource"

# Cached adapter instances, keyed by setting name
_lock = threading.Lock()
_instances: dict[str, Any] = {}


def _load(setting: str, path: str) -> Any:
    if not path:
        raise ImproperlyConfigured(f"FLOORMAN['{setting}'] must be configured.")
    try:
        adapter_class = import_string(path)
    except ImportError as e:
        raise ImproperlyConfigured(
            f"Failed to import {setting} adapter '{path}': {e}"
        ) from e
    logger.debug("Loaded %s adapter: %s", setting, path)
    return adapter_class()


def _cached(setting: str, factory):
    if setting not in _instances:
        with _lock:
            if setting not in _instances:  # double-checked
                _instances[setting] = factory()
    return _instances[setting]


def get_store():
    """Return the configured DocumentStore."""
    return _cached("STORE", lambda: _load("STORE", floorman_settings.STORE))


def get_sync_queue():
    """Return the configured SyncQueue."""
    return _cached("SYNC_QUEUE", lambda: _load("SYNC_QUEUE", floorman_settings.SYNC_QUEUE))


def get_observer():
    """Return the configured ScanObserver."""
    return _cached("OBSERVER", lambda: _load("OBSERVER", floorman_settings.OBSERVER))


def get_plan_sources() -> list:
    """Configured plan sources in load order; demo last when DEMO_MODE is on."""
    def build():
        paths = list(floorman_settings.PLAN_SOURCES)
        if floorman_settings.DEMO_MODE and DEMO_SOURCE not in paths:
            paths.append(DEMO_SOURCE)
        return [_load("PLAN_SOURCES", path) for path in paths]
    return _cached("PLAN_SOURCES", build)


def reset_adapters() -> None:
    """Drop cached adapters. Useful for testing and after settings changes."""
    with _lock:
        _instances.clear()


__all__ = [
    "get_store",
    "get_sync_queue",
    "get_observer",
    "get_plan_sources",
    "reset_adapters",
]
