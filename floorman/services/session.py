"""
Scan session — serialized scan handling for one open document.

The session is the in-memory authoritative line table of a document.
Every mutation runs under the session lock, so one reconciliation is in
flight at a time; persistence happens through DocumentLifecycle right
after the in-memory update.

    session = floor.open('receiving', 'RCV-001')
    outcome = session.scan('4601234567890')
    if outcome.rejection:
        show(outcome.rejection.message, outcome.rejection.hints)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable

from floorman.exceptions import (
    ConcurrencyGuard,
    FloorError,
    NotFound,
    PolicyViolation,
    ScanValidationError,
)
from floorman.models.enums import DocumentStatus, DocumentType
from floorman.policies import DocumentPolicy
from floorman.protocols.snapshots import DiscrepancyRecord, DocumentSnapshot, LineSnapshot
from floorman.protocols.telemetry import ScanObserver
from floorman.services.lifecycle import DocumentLifecycle, FinishResult
from floorman.services.proximity import ZoneProximityRanker
from floorman.services.reconciler import CompletionCooldown, LineReconciler
from floorman.services.resolver import (
    CellReference,
    ProductMatch,
    ScanContext,
    ScanResolver,
    Unresolved,
    is_cell_code,
    normalize_cell,
)
from floorman.services.route import AdvanceTicket, RouteEngine, RouteState
from floorman.services.stats import (
    DocumentStats,
    can_complete,
    document_stats,
    is_shipment_complete,
    progress,
    sort_by_priority,
)

logger = logging.getLogger('floorman')


class OutcomeKind(str, Enum):
    """What a scan ended up doing."""

    CELL = "cell"
    LINE = "line"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class ScanOutcome:
    kind: OutcomeKind
    code: str = ''
    line: LineSnapshot | None = None
    cell_id: str | None = None
    created: bool = False
    rejection: FloorError | None = None
    route: RouteState | None = None
    offer_completion: bool = False

    @property
    def accepted(self) -> bool:
        return self.kind in (OutcomeKind.CELL, OutcomeKind.LINE)


class ScanSession:
    """
    One open document: lines, active cell, route or zone history, cooldown.

    Picking documents get a RouteEngine, placement documents a
    ZoneProximityRanker; every type shares the same reconciler path.
    """

    def __init__(self, document: DocumentSnapshot, lines, lifecycle: DocumentLifecycle,
                 policy: DocumentPolicy, *, resolver: ScanResolver | None = None,
                 cooldown: CompletionCooldown | None = None,
                 route: RouteEngine | None = None,
                 ranker: ZoneProximityRanker | None = None,
                 observer: ScanObserver | None = None,
                 stream_mode: bool = False,
                 on_complete: Callable[['ScanSession'], None] | None = None):
        self.document = document
        self._lines: dict[str, LineSnapshot] = {line.id: line for line in lines}
        self.lifecycle = lifecycle
        self.policy = policy
        self.resolver = resolver or ScanResolver()
        self.reconciler = LineReconciler(policy, cooldown or CompletionCooldown())
        self.route = route
        self.ranker = ranker
        self.observer = observer
        self.stream_mode = stream_mode
        self.on_complete = on_complete
        self.active_cell_id: str | None = None
        self._last_outcome: dict[str, ScanOutcome] = {}
        self._lock = threading.Lock()

    @property
    def lines(self) -> list[LineSnapshot]:
        return list(self._lines.values())

    def line(self, line_id: str) -> LineSnapshot:
        try:
            return self._lines[line_id]
        except KeyError:
            raise NotFound('LINE_NOT_FOUND', line_id=line_id) from None

    def _emit(self, name: str, **data) -> None:
        if self.observer is not None:
            self.observer.on_event(name, document_id=self.document.id, **data)

    def _ensure_open(self) -> None:
        if self.document.status == DocumentStatus.COMPLETED:
            raise PolicyViolation('DOCUMENT_COMPLETED', document_id=self.document.id)

    def _commit(self, line: LineSnapshot) -> None:
        lines = {**self._lines, line.id: line}
        self.document = self.lifecycle.commit_line(self.document, list(lines.values()), line)
        self._lines = lines

    def _ready_to_complete(self) -> bool:
        """Every line exactly at plan (shipment: loaded as planned)."""
        if self.document.doc_type == DocumentType.SHIPMENT:
            return is_shipment_complete(self.lines)
        ok, warnings = can_complete(self.document.doc_type, self.lines)
        return ok and not warnings and bool(self._lines)

    def _reject(self, code: str, error: FloorError) -> ScanOutcome:
        logger.warning(
            "scan.rejected",
            extra={"document_id": self.document.id, "code": error.code, "scanned": code},
        )
        self._emit("scan.rejected", code=code, error=error.code)
        return ScanOutcome(kind=OutcomeKind.REJECTED, code=code, rejection=error)

    def _duplicate(self, code: str, line_id: str) -> ScanOutcome:
        logger.debug("scan.duplicate", extra={"document_id": self.document.id, "line_id": line_id})
        previous = self._last_outcome.get(line_id)
        if previous is not None:
            return previous
        return ScanOutcome(kind=OutcomeKind.DUPLICATE, code=code, line=self._lines.get(line_id))

    def _remember(self, outcome: ScanOutcome) -> ScanOutcome:
        if outcome.line is not None:
            self._last_outcome[outcome.line.id] = outcome
        # stream mode: per-line feedback is suppressed
        if outcome.kind == OutcomeKind.LINE and not self.stream_mode:
            self._emit("scan.line", line_id=outcome.line.id, fact=outcome.line.quantity_fact)
        return outcome

    # ══════════════════════════════════════════════════════════════
    # SCANS
    # ══════════════════════════════════════════════════════════════

    def scan(self, raw: str, *, confirmed: bool = False) -> ScanOutcome:
        """
        Handle one scanned code.

        Validation and not-found failures come back as a rejected outcome.
        A bounce inside the completion cooldown returns the previous
        outcome for that line unchanged.

        Raises:
            PolicyViolation: plan exceeded without confirmed=True, wrong
                cell in picking or a product of another cell, document
                already completed
        """
        with self._lock:
            self._ensure_open()
            if self.route is not None:
                return self._scan_route(raw, confirmed)
            return self._scan_lines(raw, confirmed)

    def _scan_route(self, raw: str, confirmed: bool) -> ScanOutcome:
        code = (raw or '').strip()
        if not code:
            return self._reject(code, ScanValidationError('EMPTY_CODE'))

        if is_cell_code(code):
            cell_id = normalize_cell(code)
            state = self.route.scan_cell(cell_id)
            self.active_cell_id = cell_id
            return ScanOutcome(kind=OutcomeKind.CELL, code=code, cell_id=cell_id, route=state)

        step = self.route.current
        if self.route.awaiting_product and not any(line.matches(code) for line in self.lines):
            return self._reject(code, NotFound(
                'CODE_NOT_FOUND',
                scanned=code,
                cell_id=step.cell_id,
                hints=self.resolver.pending_names(
                    [self._lines[item.line_id] for item in step.items if item.line_id in self._lines]
                ),
            ))

        item = self.route.item_for(code)
        try:
            line, state = self.route.pick(code, self._lines, self.reconciler, confirmed=confirmed)
        except ConcurrencyGuard:
            return self._duplicate(code, item.line_id)
        self._commit(line)
        return self._remember(ScanOutcome(
            kind=OutcomeKind.LINE,
            code=code,
            line=line,
            cell_id=self.active_cell_id,
            route=state,
            offer_completion=self.route.is_complete,
        ))

    def _scan_lines(self, raw: str, confirmed: bool) -> ScanOutcome:
        code = (raw or '').strip()
        context = ScanContext(
            document_id=self.document.id,
            policy=self.policy,
            lines=self.lines,
            active_cell_id=self.active_cell_id,
        )
        result = self.resolver.resolve(code, context)

        if isinstance(result, Unresolved):
            return self._reject(code, result.error)
        if isinstance(result, CellReference):
            return self._scan_cell(code, result)
        if isinstance(result, ProductMatch):
            return self._scan_product(code, result, confirmed)
        raise TypeError(f"unexpected scan resolution: {result!r}")

    def _scan_cell(self, code: str, result: CellReference) -> ScanOutcome:
        if not self.policy.uses_cells:
            return self._reject(code, ScanValidationError('UNEXPECTED_CELL', cell_id=result.cell_id))
        self.active_cell_id = result.cell_id
        if self.ranker is not None:
            self.ranker.record(result.cell_id)
        self._emit("scan.cell", cell_id=result.cell_id)
        return ScanOutcome(kind=OutcomeKind.CELL, code=code, cell_id=result.cell_id)

    def _scan_product(self, code: str, result: ProductMatch, confirmed: bool) -> ScanOutcome:
        line = result.line
        if self.policy.assigns_cell and line.cell_id is None:
            line = replace(line, cell_id=self.active_cell_id)
        try:
            updated = self.reconciler.apply(line, 1, confirmed=confirmed, scanned=True)
        except ConcurrencyGuard:
            return self._duplicate(code, line.id)
        self._commit(updated)
        return self._remember(ScanOutcome(
            kind=OutcomeKind.LINE,
            code=code,
            line=updated,
            cell_id=self.active_cell_id,
            created=result.created,
            offer_completion=self._ready_to_complete(),
        ))

    # ══════════════════════════════════════════════════════════════
    # MANUAL EDITS
    # ══════════════════════════════════════════════════════════════

    def update_quantity(self, line_id: str, delta: int, *, absolute: bool = False,
                        confirmed: bool = False) -> ScanOutcome:
        """
        Quantity buttons / typed quantity.

        Raises:
            NotFound('LINE_NOT_FOUND'), PolicyViolation, ScanValidationError
        """
        with self._lock:
            self._ensure_open()
            return self._update(self.line(line_id), delta, absolute=absolute, confirmed=confirmed)

    def take_all(self, line_id: str) -> ScanOutcome:
        """Set a line to exactly its plan; never goes over."""
        with self._lock:
            self._ensure_open()
            line = self.line(line_id)
            return self._update(line, max(line.quantity_plan, 0), absolute=True)

    def _update(self, line: LineSnapshot, delta: int, *, absolute: bool = False,
                confirmed: bool = False) -> ScanOutcome:
        try:
            updated = self.reconciler.apply(line, delta, absolute=absolute, confirmed=confirmed)
        except ConcurrencyGuard:
            return self._duplicate('', line.id)
        if updated is line:
            return ScanOutcome(kind=OutcomeKind.LINE, line=line)
        self._commit(updated)
        if self.route is not None:
            return self._remember(ScanOutcome(
                kind=OutcomeKind.LINE,
                line=updated,
                route=self.route.state(advance=self.route.ticket_for(self._lines)),
                offer_completion=self.route.is_complete,
            ))
        return self._remember(ScanOutcome(
            kind=OutcomeKind.LINE,
            line=updated,
            offer_completion=self._ready_to_complete(),
        ))

    # ══════════════════════════════════════════════════════════════
    # PICKING ROUTE
    # ══════════════════════════════════════════════════════════════

    def _require_route(self) -> RouteEngine:
        if self.route is None:
            raise PolicyViolation('NO_ACTIVE_STEP', doc_type=self.document.doc_type.value)
        return self.route

    def confirm_advance(self, ticket: AdvanceTicket) -> RouteState:
        """Redeem an auto-advance ticket after its delay."""
        with self._lock:
            route = self._require_route()
            if route.confirm_advance(ticket):
                self.active_cell_id = None
            return route.state()

    def skip(self) -> RouteState:
        with self._lock:
            self._ensure_open()
            state = self._require_route().skip()
            self.active_cell_id = None
            return state

    def complete_step(self) -> RouteState:
        with self._lock:
            self._ensure_open()
            state = self._require_route().complete_step()
            self.active_cell_id = None
            return state

    def not_in_cell(self) -> list[DiscrepancyRecord]:
        """Record missing goods of the current step and move on."""
        with self._lock:
            self._ensure_open()
            records = self._require_route().not_in_cell(self._lines)
            self.active_cell_id = None
            self._emit("route.not_in_cell", missing=len(records))
            return records

    # ══════════════════════════════════════════════════════════════
    # PLACEMENT ZONES
    # ══════════════════════════════════════════════════════════════

    def visible_lines(self) -> list[LineSnapshot]:
        """Lines in display order: zone-ranked for placement, by status priority otherwise."""
        if self.ranker is None:
            return sort_by_priority(self.lines)
        return self.ranker.visible(self.lines, enabled=self.policy.zone_filter)

    def lock_zone(self, zone: str | None = None) -> str | None:
        if self.ranker is None:
            return None
        return self.ranker.lock(zone)

    def unlock_zone(self) -> None:
        if self.ranker is not None:
            self.ranker.unlock()

    # ══════════════════════════════════════════════════════════════
    # FINISH
    # ══════════════════════════════════════════════════════════════

    def finish(self, force: bool = False) -> FinishResult:
        """See DocumentLifecycle.finish()."""
        with self._lock:
            extra = self.route.missing if self.route is not None else ()
            result = self.lifecycle.finish(self.document, self.lines, force=force, extra=extra)
            self.document = result.document
        if self.document.is_completed and self.on_complete is not None:
            self.on_complete(self)
        return result

    def attach_discrepancies(self, records: Iterable[DiscrepancyRecord]) -> DocumentSnapshot:
        """Append discrepancy records; the only change a completed document accepts."""
        with self._lock:
            self.document = self.lifecycle.attach_discrepancies(self.document, records)
            return self.document

    # ══════════════════════════════════════════════════════════════
    # STATS
    # ══════════════════════════════════════════════════════════════

    def stats(self) -> DocumentStats:
        return document_stats(self.lines)

    @property
    def progress(self) -> int:
        """Completed lines over total lines, rounded percent."""
        return progress(self.document)

    def can_complete(self) -> tuple[bool, list[str]]:
        return can_complete(self.document.doc_type, self.lines)

    @property
    def route_complete(self) -> bool:
        """Picking route walked to the end; completion may be offered."""
        return self.route is not None and self.route.is_complete

    def __repr__(self) -> str:
        return f"<ScanSession {self.document.doc_type.value}:{self.document.id} lines={len(self._lines)}>"
