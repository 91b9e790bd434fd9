"""
In-memory adapters — store and sync queue without a database.

Suitable for:
- Unit tests of the engine
- Local development and demos without migrations

Usage in settings.py:
    FLOORMAN = {
        "STORE": "floorman.adapters.memory.MemoryDocumentStore",
        "SYNC_QUEUE": "floorman.adapters.memory.MemorySyncQueue",
    }

WARNING: Do NOT use in production. Nothing survives a restart.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterable

from floorman.exceptions import PolicyViolation
from floorman.models.enums import DocumentType, SyncActionType
from floorman.protocols.snapshots import DocumentSnapshot, LineSnapshot


class MemoryDocumentStore:
    """
    DocumentStore backed by dicts, one table per document type.

    Same contract as the ORM store: upsert by id, stale line revisions
    ignored.
    """

    def __init__(self):
        self._documents: dict[DocumentType, dict[str, DocumentSnapshot]] = {t: {} for t in DocumentType}
        self._lines: dict[DocumentType, dict[str, LineSnapshot]] = {t: {} for t in DocumentType}
        self._lock = threading.Lock()

    def get(self, doc_type, doc_id: str) -> DocumentSnapshot | None:
        return self._documents[DocumentType(doc_type)].get(doc_id)

    def get_lines(self, doc_type, doc_id: str) -> list[LineSnapshot]:
        table = self._lines[DocumentType(doc_type)]
        return [line for line in table.values() if line.document_id == doc_id]

    def _doc_type_of(self, document_id: str) -> DocumentType:
        for doc_type, table in self._documents.items():
            if document_id in table:
                return doc_type
        raise KeyError(f"document {document_id!r} is not stored")

    def upsert_line(self, line: LineSnapshot) -> None:
        with self._lock:
            table = self._lines[self._doc_type_of(line.document_id)]
            current = table.get(line.id)
            if current is not None and current.revision > line.revision:
                return
            table[line.id] = line

    def upsert_document(self, document: DocumentSnapshot) -> None:
        with self._lock:
            table = self._documents[DocumentType(document.doc_type)]
            current = table.get(document.id)
            if current is not None and current.is_completed and not document.is_completed:
                raise PolicyViolation('DOCUMENT_COMPLETED', document_id=document.id)
            table[document.id] = document

    def bulk_put(self, document: DocumentSnapshot, lines: Iterable[LineSnapshot]) -> None:
        with self.atomic():
            self.upsert_document(document)
            for line in lines:
                self.upsert_line(line)

    @contextmanager
    def atomic(self):
        """Tables are restored to their state at entry if the block raises."""
        with self._lock:
            documents = {t: dict(table) for t, table in self._documents.items()}
            lines = {t: dict(table) for t, table in self._lines.items()}
        try:
            yield
        except Exception:
            with self._lock:
                self._documents, self._lines = documents, lines
            raise


class MemorySyncQueue:
    """SyncQueue that keeps (action_type, payload) tuples in a list."""

    def __init__(self):
        self.actions: list[tuple[SyncActionType, dict[str, Any]]] = []

    def enqueue(self, action_type, payload: dict[str, Any]) -> None:
        self.actions.append((SyncActionType(action_type), payload))

    def of_type(self, action_type) -> list[dict[str, Any]]:
        action_type = SyncActionType(action_type)
        return [payload for kind, payload in self.actions if kind == action_type]
