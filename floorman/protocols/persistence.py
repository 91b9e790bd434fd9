"""
Persistence Protocol — local cache of documents and lines.

Writes are fire-and-forget relative to in-memory state, so implementations
must upsert by id, accept duplicates, and ignore a line write whose
revision is older than the stored one.
"""

from __future__ import annotations

from typing import ContextManager, Iterable, Protocol, runtime_checkable

from floorman.models.enums import DocumentType
from floorman.protocols.snapshots import DocumentSnapshot, LineSnapshot


@runtime_checkable
class DocumentStore(Protocol):
    """
    Typed repository parameterized by the document type tag.

    Reads are scoped by doc_type: a document id cached under one type is
    invisible to every other type.
    """

    def get(self, doc_type: DocumentType, doc_id: str) -> DocumentSnapshot | None:
        """Return the cached document or None."""
        ...

    def get_lines(self, doc_type: DocumentType, doc_id: str) -> list[LineSnapshot]:
        """Return the cached lines of a document (empty if none)."""
        ...

    def upsert_line(self, line: LineSnapshot) -> None:
        """Insert or update one line by id."""
        ...

    def upsert_document(self, document: DocumentSnapshot) -> None:
        """
        Insert or update a document header by id.

        A stored completed document never moves back to another status:
        raise PolicyViolation('DOCUMENT_COMPLETED') instead.
        """
        ...

    def bulk_put(self, document: DocumentSnapshot, lines: Iterable[LineSnapshot]) -> None:
        """Initial hydration: header plus all of its lines."""
        ...

    def atomic(self) -> ContextManager:
        """Block whose writes are applied together or not at all."""
        ...
