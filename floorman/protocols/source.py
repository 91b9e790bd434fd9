"""
Plan Source Protocol — remote or demo origin of document plans.

Used only to seed the local cache the first time a document is opened.
The source converts its own wire format to PlanResult; the engine never
sees anything else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from floorman.models.enums import DocumentStatus, DocumentType


@dataclass(frozen=True)
class DeclaredItem:
    """Planned item of a document."""

    uid: str
    product_id: str
    quantity: int
    product_name: str = ''
    sku: str = ''
    barcode: str = ''
    cell_id: str | None = None


@dataclass(frozen=True)
class CountedItem:
    """Quantity already counted for a product."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class PlanResult:
    """Declared and counted items of one document."""

    document_id: str
    doc_type: DocumentType
    declared: tuple[DeclaredItem, ...]
    counted: tuple[CountedItem, ...] = ()
    status: DocumentStatus = DocumentStatus.NEW
    number: str = ''
    partner_name: str = ''
    created_at: datetime | None = None
    updated_at: datetime | None = None
    fields: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PlanSource(Protocol):
    """
    Protocol for plan sources.

    fetch_plan returns None when the source does not know the document and
    raises SourceError when the source itself fails (network down, bad
    payload). Both move the load to the next source.
    """

    name: str

    def fetch_plan(self, doc_type: DocumentType, doc_id: str) -> PlanResult | None:
        ...
