"""
Discrepancy analysis — plan vs fact per line and per document.
"""

from dataclasses import dataclass, replace
from typing import Iterable

from floorman.models.enums import DiscrepancyKind
from floorman.protocols.snapshots import DiscrepancyRecord, LineSnapshot

MISSING = 'missing'


def classify(line: LineSnapshot) -> DiscrepancyKind:
    """shortage if fact < plan, surplus if fact > plan, ok otherwise."""
    diff = line.quantity_fact - line.quantity_plan
    if diff < 0:
        return DiscrepancyKind.SHORTAGE
    if diff > 0:
        return DiscrepancyKind.SURPLUS
    return DiscrepancyKind.OK


def to_record(line: LineSnapshot, tag: str = '') -> DiscrepancyRecord:
    return DiscrepancyRecord(
        line_id=line.id,
        product_name=line.display_name,
        planned=line.quantity_plan,
        actual=line.quantity_fact,
        kind=classify(line),
        tag=tag,
    )


@dataclass(frozen=True)
class DiscrepancyReport:
    """All non-ok lines of a document."""

    records: tuple[DiscrepancyRecord, ...] = ()

    @property
    def has_discrepancy(self) -> bool:
        return bool(self.records)

    @property
    def shortages(self) -> list[DiscrepancyRecord]:
        return [r for r in self.records if r.kind == DiscrepancyKind.SHORTAGE]

    @property
    def surpluses(self) -> list[DiscrepancyRecord]:
        return [r for r in self.records if r.kind == DiscrepancyKind.SURPLUS]

    def as_list(self) -> list[dict]:
        return [r.to_payload() for r in self.records]


def report(lines: Iterable[LineSnapshot],
           extra: Iterable[DiscrepancyRecord] = ()) -> DiscrepancyReport:
    """
    Build the document report.

    extra carries records produced outside the line table (picking
    "not in cell"); their tag is kept on the matching line's record.
    Extra records for lines that are no longer short are dropped.
    """
    tags = {r.line_id: r.tag for r in extra if r.tag}
    records = []
    for line in lines:
        record = to_record(line)
        if record.kind == DiscrepancyKind.OK:
            continue
        if line.id in tags:
            record = replace(record, tag=tags[line.id])
        records.append(record)
    return DiscrepancyReport(records=tuple(records))
