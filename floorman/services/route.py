"""
Picking route — cell-by-cell walk through a picking document.

    route = RouteEngine.build(lines)
    route.scan_cell('A1-01')
    line, result = route.pick('4601234', lines_by_id, reconciler)
    if result.advance:
        schedule(result.advance.delay_ms, route.confirm_advance, result.advance)

The engine never sleeps. Auto-advance hands out a ticket; the caller runs
the timer and redeems the ticket. Any manual navigation in between makes
the ticket stale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from floorman.exceptions import PolicyViolation
from floorman.models.enums import DiscrepancyKind, RouteStepStatus
from floorman.protocols.snapshots import DiscrepancyRecord, LineSnapshot
from floorman.services.discrepancy import MISSING
from floorman.services.reconciler import LineReconciler

logger = logging.getLogger('floorman')


@dataclass(frozen=True)
class RouteItem:
    """Product to pick at a step, with the quantity required when built."""

    line_id: str
    product_name: str
    barcode: str
    product_sku: str
    required: int

    def matches(self, code: str) -> bool:
        return bool(code) and code in (self.barcode, self.product_sku)


@dataclass(frozen=True)
class RouteStep:
    cell_id: str
    items: tuple[RouteItem, ...]
    status: RouteStepStatus = RouteStepStatus.PENDING

    def is_picked(self, lines_by_id: Mapping[str, LineSnapshot]) -> bool:
        """Every item at or above its required quantity."""
        return all(
            item.line_id in lines_by_id
            and lines_by_id[item.line_id].quantity_fact >= item.required
            for item in self.items
        )


@dataclass(frozen=True)
class AdvanceTicket:
    """Scheduled auto-advance; valid until the route moves by other means."""

    step_index: int
    generation: int
    delay_ms: int


@dataclass(frozen=True)
class RouteState:
    """Outcome of a route operation."""

    step: RouteStep | None
    awaiting_product: bool = False
    advance: AdvanceTicket | None = None
    route_complete: bool = False


class RouteEngine:
    """
    Ordered route steps with a single current step.

    Invariant: at most one step is CURRENT, every step before it is
    COMPLETED or SKIPPED, and none after it is.
    """

    def __init__(self, steps: Iterable[RouteStep], auto_advance: bool = True, delay_ms: int = 800):
        self.steps: list[RouteStep] = list(steps)
        self.auto_advance = auto_advance
        self.delay_ms = delay_ms
        self.index = 0
        self.awaiting_product = False
        self.missing: list[DiscrepancyRecord] = []
        self._generation = 0
        if self.steps:
            self.steps[0] = replace(self.steps[0], status=RouteStepStatus.CURRENT)

    @classmethod
    def build(cls, lines: Iterable[LineSnapshot], *, resume: bool = False, **kwargs) -> 'RouteEngine':
        """
        Group lines by cell in first-seen order.

        Lines without a cell cannot be visited and are left out. With
        resume=True, leading steps that are already picked start completed.
        """
        lines = list(lines)
        grouped: dict[str, list[RouteItem]] = {}
        for line in lines:
            if not line.cell_id:
                logger.warning("route.line_without_cell", extra={"line_id": line.id})
                continue
            grouped.setdefault(line.cell_id, []).append(RouteItem(
                line_id=line.id,
                product_name=line.display_name,
                barcode=line.barcode,
                product_sku=line.product_sku,
                required=line.quantity_plan,
            ))
        route = cls(
            (RouteStep(cell_id=cell, items=tuple(items)) for cell, items in grouped.items()),
            **kwargs,
        )
        if resume:
            lines_by_id = {line.id: line for line in lines}
            while route.current is not None and route.current.is_picked(lines_by_id):
                route._advance(RouteStepStatus.COMPLETED)
        return route

    # ══════════════════════════════════════════════════════════════
    # STATE
    # ══════════════════════════════════════════════════════════════

    @property
    def current(self) -> RouteStep | None:
        if self.index < len(self.steps):
            return self.steps[self.index]
        return None

    @property
    def is_complete(self) -> bool:
        return self.index >= len(self.steps)

    def state(self, advance: AdvanceTicket | None = None) -> RouteState:
        return RouteState(
            step=self.current,
            awaiting_product=self.awaiting_product,
            advance=advance,
            route_complete=self.is_complete,
        )

    def _require_current(self) -> RouteStep:
        step = self.current
        if step is None:
            raise PolicyViolation('NO_ACTIVE_STEP')
        return step

    def _advance(self, status: RouteStepStatus) -> None:
        self.steps[self.index] = replace(self.steps[self.index], status=status)
        self.index += 1
        self.awaiting_product = False
        self._generation += 1
        if self.index < len(self.steps):
            self.steps[self.index] = replace(self.steps[self.index], status=RouteStepStatus.CURRENT)
        logger.info(
            "route.advance",
            extra={"to_index": self.index, "from_status": str(status), "complete": self.is_complete},
        )

    # ══════════════════════════════════════════════════════════════
    # SCANS
    # ══════════════════════════════════════════════════════════════

    def scan_cell(self, cell_id: str) -> RouteState:
        """
        Operator scanned a cell.

        Raises:
            PolicyViolation('WRONG_CELL'): not the current step's cell;
                nothing changes and the operator rescans
            PolicyViolation('NO_ACTIVE_STEP'): route already complete
        """
        step = self._require_current()
        if cell_id.upper() != step.cell_id.upper():
            raise PolicyViolation('WRONG_CELL', cell_id=cell_id, expected=step.cell_id)
        self.awaiting_product = True
        return self.state()

    def item_for(self, code: str) -> RouteItem:
        """
        Item of the current step matching a product code.

        Raises:
            PolicyViolation('SCAN_CELL_FIRST'): cell not scanned yet
            PolicyViolation('WRONG_CELL_PRODUCT'): product is not picked here
        """
        step = self._require_current()
        if not self.awaiting_product:
            raise PolicyViolation('SCAN_CELL_FIRST', expected=step.cell_id)
        for item in step.items:
            if item.matches(code):
                return item
        raise PolicyViolation(
            'WRONG_CELL_PRODUCT',
            scanned=code,
            cell_id=step.cell_id,
            hints=[item.product_name for item in step.items][:3],
        )

    def pick(self, code: str, lines_by_id: Mapping[str, LineSnapshot],
             reconciler: LineReconciler, *, confirmed: bool = False, now=None
             ) -> tuple[LineSnapshot, RouteState]:
        """
        Pick one unit of a product at the current cell.

        Returns the updated line and the route state; the state carries an
        AdvanceTicket when the step became fully picked and auto-advance
        is on.
        """
        item = self.item_for(code)
        line = reconciler.apply(
            lines_by_id[item.line_id], 1, confirmed=confirmed, scanned=True, now=now,
        )
        merged = {**lines_by_id, line.id: line}
        return line, self.state(advance=self._ticket_if_picked(merged))

    def _ticket_if_picked(self, lines_by_id: Mapping[str, LineSnapshot]) -> AdvanceTicket | None:
        step = self.current
        if not self.auto_advance or step is None or not step.is_picked(lines_by_id):
            return None
        return AdvanceTicket(step_index=self.index, generation=self._generation, delay_ms=self.delay_ms)

    def ticket_for(self, lines_by_id: Mapping[str, LineSnapshot]) -> AdvanceTicket | None:
        """Ticket for the current step if it is fully picked (after manual edits)."""
        return self._ticket_if_picked(lines_by_id)

    # ══════════════════════════════════════════════════════════════
    # NAVIGATION
    # ══════════════════════════════════════════════════════════════

    def confirm_advance(self, ticket: AdvanceTicket) -> bool:
        """
        Redeem an auto-advance ticket once its delay has passed.

        Returns False when the route moved in the meantime.
        """
        if ticket.generation != self._generation or ticket.step_index != self.index:
            logger.debug("route.advance.stale", extra={"step_index": ticket.step_index})
            return False
        self._advance(RouteStepStatus.COMPLETED)
        return True

    def cancel_advance(self) -> None:
        """Invalidate outstanding tickets without moving."""
        self._generation += 1

    def complete_step(self) -> RouteState:
        """Operator confirms the current step by hand."""
        self._require_current()
        self._advance(RouteStepStatus.COMPLETED)
        return self.state()

    def skip(self) -> RouteState:
        """Skip the current step regardless of what was picked."""
        self._require_current()
        self._advance(RouteStepStatus.SKIPPED)
        return self.state()

    def not_in_cell(self, lines_by_id: Mapping[str, LineSnapshot]) -> list[DiscrepancyRecord]:
        """
        Goods are physically absent: record a shortage for every item still
        under plan, then skip the step.
        """
        step = self._require_current()
        records = []
        for item in step.items:
            line = lines_by_id.get(item.line_id)
            actual = line.quantity_fact if line is not None else 0
            if actual >= item.required:
                continue
            records.append(DiscrepancyRecord(
                line_id=item.line_id,
                product_name=item.product_name,
                planned=item.required,
                actual=actual,
                kind=DiscrepancyKind.SHORTAGE,
                tag=MISSING,
            ))
        self.missing.extend(records)
        logger.info(
            "route.not_in_cell",
            extra={"cell_id": step.cell_id, "missing": len(records)},
        )
        self._advance(RouteStepStatus.SKIPPED)
        return records
