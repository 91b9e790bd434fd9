"""
Document statistics and list ordering for the document screens.
"""

from dataclasses import dataclass
from typing import Iterable

from floorman.models.enums import DocumentType, LineStatus
from floorman.protocols.snapshots import DocumentSnapshot, LineSnapshot


@dataclass(frozen=True)
class DocumentStats:
    total_lines: int
    not_started: int
    in_progress: int
    completed: int
    over: int
    total_plan: int
    total_fact: int

    @property
    def progress(self) -> float:
        """Fact over plan, in percent."""
        if self.total_plan <= 0:
            return 0.0
        return self.total_fact / self.total_plan * 100


def progress(document: DocumentSnapshot) -> int:
    """Completed lines over total lines, rounded percent."""
    if document.total_lines == 0:
        return 0
    return round(document.completed_lines / document.total_lines * 100)


def document_stats(lines: Iterable[LineSnapshot]) -> DocumentStats:
    lines = list(lines)
    by_status = {status: 0 for status in LineStatus}
    for line in lines:
        by_status[line.status] += 1
    return DocumentStats(
        total_lines=len(lines),
        not_started=by_status[LineStatus.PENDING],
        in_progress=by_status[LineStatus.PARTIAL],
        completed=by_status[LineStatus.COMPLETED],
        over=by_status[LineStatus.OVER],
        total_plan=sum(line.quantity_plan for line in lines),
        total_fact=sum(line.quantity_fact for line in lines),
    )


# In progress first, then errors, then untouched, then done
_PRIORITY = {
    LineStatus.PARTIAL: 1,
    LineStatus.OVER: 2,
    LineStatus.PENDING: 3,
    LineStatus.COMPLETED: 4,
}


def line_priority(line: LineSnapshot) -> int:
    return _PRIORITY.get(line.status, 5)


def sort_by_priority(lines: Iterable[LineSnapshot]) -> list[LineSnapshot]:
    return sorted(lines, key=lambda line: (line_priority(line), line.display_name))


def can_complete(doc_type, lines: Iterable[LineSnapshot]) -> tuple[bool, list[str]]:
    """
    Whether the document may be finished, with operator warnings.

    Only picking and placement insist on every line being done; the other
    types may always be finished (the discrepancy gate still applies).
    """
    stats = document_stats(lines)
    warnings = []
    if stats.not_started:
        warnings.append(f"{stats.not_started} позиций не обработано")
    if stats.in_progress:
        warnings.append(f"{stats.in_progress} позиций обработано частично")
    if stats.over:
        warnings.append(f"{stats.over} позиций с излишками")

    strict = DocumentType(doc_type) in (DocumentType.PICKING, DocumentType.PLACEMENT)
    ok = not strict or (stats.not_started == 0 and stats.in_progress == 0)
    return ok, warnings


def is_shipment_complete(lines: Iterable[LineSnapshot]) -> bool:
    """Every shipment line loaded exactly as planned."""
    lines = list(lines)
    return bool(lines) and all(line.quantity_fact == line.quantity_plan for line in lines)
