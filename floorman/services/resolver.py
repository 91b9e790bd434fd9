"""
Scan resolution — what a raw scanned code refers to.

Resolution has no side effects. A placeholder line for blind counts is
returned with created=True; inserting it is the caller's job.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Callable, Sequence

from floorman.exceptions import FloorError, NotFound, ScanValidationError
from floorman.policies import DocumentPolicy
from floorman.protocols.snapshots import LineSnapshot

CELL_CODE_RE = re.compile(r'^[A-Z]+\d+-\d+$', re.IGNORECASE)


@dataclass(frozen=True)
class CellReference:
    cell_id: str


@dataclass(frozen=True)
class ProductMatch:
    line: LineSnapshot
    created: bool = False


@dataclass(frozen=True)
class Unresolved:
    error: FloorError


@dataclass(frozen=True)
class ScanContext:
    """What the resolver needs to know about the open document."""

    document_id: str
    policy: DocumentPolicy
    lines: Sequence[LineSnapshot]
    active_cell_id: str | None = None


def is_cell_code(code: str) -> bool:
    return bool(CELL_CODE_RE.match(code))


def normalize_cell(code: str) -> str:
    return code.strip().upper()


def _new_line_id() -> str:
    return uuid.uuid4().hex


class ScanResolver:
    """
    Classifies raw codes and finds the matching line.

    Usage:
        resolver = ScanResolver()
        result = resolver.resolve('A1-01', context)   # CellReference
        result = resolver.resolve('4601234', context) # ProductMatch / Unresolved
    """

    def __init__(self, hints: int = 3, id_factory: Callable[[], str] = _new_line_id):
        self.hints = hints
        self._id_factory = id_factory

    def scope(self, context: ScanContext) -> list[LineSnapshot]:
        """
        Lines a product scan may match.

        In cell-scoped workflows only lines of the active cell qualify;
        placement also accepts lines that have no cell assigned yet.
        """
        if not context.policy.cell_scoped:
            return list(context.lines)
        cell = context.active_cell_id
        if cell is None:
            return []
        return [
            line for line in context.lines
            if line.cell_id == cell or (context.policy.assigns_cell and line.cell_id is None)
        ]

    def pending_names(self, lines: Sequence[LineSnapshot]) -> list[str]:
        return [line.display_name for line in lines if not line.is_done][:self.hints]

    def resolve(self, raw: str, context: ScanContext) -> CellReference | ProductMatch | Unresolved:
        code = (raw or '').strip()
        if not code:
            return Unresolved(ScanValidationError('EMPTY_CODE'))

        if is_cell_code(code):
            return CellReference(cell_id=normalize_cell(code))

        policy = context.policy
        if policy.cell_scoped and context.active_cell_id is None:
            return Unresolved(NotFound('SCAN_CELL_FIRST', scanned=code))

        candidates = self.scope(context)
        for line in candidates:
            if line.matches(code):
                return ProductMatch(line=line)

        if policy.blind_count:
            if policy.blind_count_needs_cell and context.active_cell_id is None:
                return Unresolved(NotFound('SCAN_CELL_FIRST', scanned=code))
            return ProductMatch(line=self.placeholder(code, context), created=True)

        return Unresolved(NotFound(
            'CODE_NOT_FOUND',
            scanned=code,
            cell_id=context.active_cell_id,
            hints=self.pending_names(candidates or context.lines),
        ))

    def placeholder(self, code: str, context: ScanContext) -> LineSnapshot:
        """Line for a product that is not in the plan (blind count)."""
        return LineSnapshot(
            id=self._id_factory(),
            document_id=context.document_id,
            product_id=code,
            product_sku=code,
            barcode=code,
            quantity_plan=0,
            cell_id=context.active_cell_id,
        )
