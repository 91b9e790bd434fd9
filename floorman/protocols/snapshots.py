"""
Snapshots — the normalized shape the engine works on.

Every engine call takes snapshots and returns new ones; nothing here talks
to the database. Adapters convert their storage rows to and from these.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from floorman.models.enums import (
    DONE_LINE_STATUSES,
    DiscrepancyKind,
    DocumentStatus,
    DocumentType,
    LineStatus,
)


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, tuple):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


@dataclass(frozen=True)
class LineSnapshot:
    """One plan/fact row."""

    id: str
    document_id: str
    product_id: str
    quantity_plan: int
    quantity_fact: int = 0
    status: LineStatus = LineStatus.PENDING
    product_name: str = ''
    product_sku: str = ''
    barcode: str = ''
    cell_id: str | None = None
    scan_count: int = 0
    last_scan_at: datetime | None = None
    revision: int = 0

    @property
    def is_done(self) -> bool:
        return self.status in DONE_LINE_STATUSES

    @property
    def display_name(self) -> str:
        return self.product_name or self.product_sku or self.product_id

    def matches(self, code: str) -> bool:
        """Exact match on barcode or SKU."""
        return bool(code) and code in (self.barcode, self.product_sku)

    def to_payload(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class DiscrepancyRecord:
    """Plan-vs-fact difference of one line."""

    line_id: str
    product_name: str
    planned: int
    actual: int
    kind: DiscrepancyKind
    tag: str = ''  # "missing" when produced by the picking "not in cell" action

    @property
    def difference(self) -> int:
        return self.actual - self.planned

    def to_payload(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class DocumentSnapshot:
    """Document header with cached counters."""

    id: str
    doc_type: DocumentType
    status: DocumentStatus = DocumentStatus.NEW
    total_lines: int = 0
    completed_lines: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    number: str = ''
    partner_name: str = ''
    source_document_id: str = ''
    fields: dict[str, Any] = field(default_factory=dict)
    discrepancies: tuple[DiscrepancyRecord, ...] = ()

    @property
    def is_completed(self) -> bool:
        return self.status == DocumentStatus.COMPLETED

    def to_payload(self) -> dict[str, Any]:
        return _jsonable(asdict(self))
