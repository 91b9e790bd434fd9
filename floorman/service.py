"""
Floor Service — the single public interface for scan-driven documents.

Usage:
    from floorman import floor, FloorError

    session = floor.open('receiving', 'RCV-001')
    session.scan('4601234000011')
    result = session.finish()
    if result.needs_confirmation:
        result = session.finish(force=True)
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable

from floorman.adapters import get_observer, get_plan_sources, get_store, get_sync_queue
from floorman.conf import floorman_settings
from floorman.models.enums import DocumentStatus, DocumentType
from floorman.policies import DocumentPolicy, get_policy
from floorman.protocols.persistence import DocumentStore
from floorman.protocols.source import PlanSource
from floorman.protocols.sync import SyncQueue
from floorman.protocols.telemetry import ScanObserver
from floorman.services.lifecycle import DocumentLifecycle
from floorman.services.proximity import ZoneProximityRanker
from floorman.services.reconciler import CompletionCooldown
from floorman.services.resolver import ScanResolver
from floorman.services.route import RouteEngine
from floorman.services.session import ScanSession


class Floor:
    """
    Wires the engine to its collaborators and hands out scan sessions.

    Collaborators default to the adapters configured in FLOORMAN; pass
    them explicitly to run the engine without settings-driven lookups.

    Sessions are cached per document so that every caller of the same
    document serializes on the same session lock. A session is dropped
    from the cache once its document completes.
    """

    def __init__(self, store: DocumentStore | None = None,
                 sync_queue: SyncQueue | None = None,
                 sources: Iterable[PlanSource] | None = None,
                 observer: ScanObserver | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.store = store if store is not None else get_store()
        self.sync_queue = sync_queue if sync_queue is not None else get_sync_queue()
        self.sources = list(sources) if sources is not None else get_plan_sources()
        self.observer = observer if observer is not None else get_observer()
        self.clock = clock
        self.lifecycle = DocumentLifecycle(
            self.store,
            self.sync_queue,
            self.sources,
            self.observer,
            create_follow_on=floorman_settings.CREATE_FOLLOW_ON,
        )
        self._sessions: dict[tuple[DocumentType, str], ScanSession] = {}
        self._lock = threading.Lock()

    # ══════════════════════════════════════════════════════════════
    # SESSIONS
    # ══════════════════════════════════════════════════════════════

    def policy(self, doc_type) -> DocumentPolicy:
        return get_policy(doc_type)

    def open(self, doc_type, doc_id: str, *, stream_mode: bool = False) -> ScanSession:
        """
        Open (or return the already open) session of a document.

        Raises:
            DataUnavailable: no cache entry and no source knows the document
        """
        doc_type = DocumentType(doc_type)
        key = (doc_type, doc_id)
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                document, lines = self.lifecycle.load(doc_type, doc_id)
                session = self._session(document, lines, stream_mode=stream_mode)
                self._sessions[key] = session
            return session

    def create(self, doc_type, *, stream_mode: bool = False, **scope) -> ScanSession:
        """Create an operator-initiated document (inventory, return) and open it."""
        document = self.lifecycle.create(doc_type, **scope)
        session = self._session(document, [], stream_mode=stream_mode)
        with self._lock:
            self._sessions[(document.doc_type, document.id)] = session
        return session

    def close(self, doc_type, doc_id: str) -> None:
        with self._lock:
            self._sessions.pop((DocumentType(doc_type), doc_id), None)

    def _release(self, session: ScanSession) -> None:
        """Completed documents take no more scans; drop their session."""
        key = (session.document.doc_type, session.document.id)
        with self._lock:
            if self._sessions.get(key) is session:
                del self._sessions[key]

    def _session(self, document, lines, *, stream_mode: bool = False) -> ScanSession:
        policy = self.policy(document.doc_type)
        route = None
        ranker = None
        if document.doc_type == DocumentType.PICKING:
            route = RouteEngine.build(
                lines,
                resume=document.status == DocumentStatus.IN_PROGRESS,
                auto_advance=policy.auto_advance,
                delay_ms=floorman_settings.AUTO_ADVANCE_DELAY_MS,
            )
        elif document.doc_type == DocumentType.PLACEMENT:
            ranker = ZoneProximityRanker(
                history_size=floorman_settings.ZONE_HISTORY_SIZE,
                window=floorman_settings.ZONE_WINDOW,
                min_history=floorman_settings.ZONE_MIN_HISTORY,
                cross_zone_distance=floorman_settings.CROSS_ZONE_DISTANCE,
            )
        return ScanSession(
            document,
            lines,
            self.lifecycle,
            policy,
            resolver=ScanResolver(hints=floorman_settings.NOT_FOUND_HINTS),
            cooldown=CompletionCooldown(floorman_settings.COMPLETION_COOLDOWN_MS, clock=self.clock),
            route=route,
            ranker=ranker,
            observer=self.observer,
            stream_mode=stream_mode,
            on_complete=self._release,
        )


_default: Floor | None = None
_default_lock = threading.Lock()


def get_floor() -> Floor:
    """Default Floor built from settings."""
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = Floor()
    return _default


def reset_floor() -> None:
    """Drop the default Floor. Useful for testing."""
    global _default
    _default = None
