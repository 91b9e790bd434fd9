"""
Line reconciliation — quantity deltas and derived line status.

status is never set directly: every mutation goes through apply_delta(),
which recomputes it from the new quantities.
"""

import logging
import time
from dataclasses import replace
from typing import Callable, Iterable

from django.utils import timezone

from floorman.exceptions import ConcurrencyGuard, PolicyViolation, ScanValidationError
from floorman.models.enums import DONE_LINE_STATUSES, LineStatus
from floorman.policies import DocumentPolicy
from floorman.protocols.snapshots import LineSnapshot

logger = logging.getLogger('floorman')


def derive_status(fact: int, plan: int) -> LineStatus:
    """
    Status of a line with the given quantities.

    fact == 0 is pending even when plan is 0 too.
    """
    if fact == 0:
        return LineStatus.PENDING
    if fact < plan:
        return LineStatus.PARTIAL
    if fact == plan:
        return LineStatus.COMPLETED
    return LineStatus.OVER


def count_completed(lines: Iterable[LineSnapshot]) -> int:
    """Number of lines at or above plan."""
    return sum(1 for line in lines if line.status in DONE_LINE_STATUSES)


def apply_delta(line: LineSnapshot, delta: int, policy: DocumentPolicy, *,
                absolute: bool = False, confirmed: bool = False,
                scanned: bool = False, now=None) -> LineSnapshot:
    """
    Apply a quantity change to a line.

    Args:
        line: Current line snapshot
        delta: Increment, or the new quantity when absolute=True
        policy: Policy of the document the line belongs to
        absolute: Treat delta as the new fact quantity
        confirmed: Operator confirmed going over plan
        scanned: Change comes from a scan (counts toward scan_count)

    Returns:
        New snapshot, or the same object when nothing changes.

    Raises:
        ScanValidationError('INVALID_QUANTITY'): absolute quantity below zero
        PolicyViolation('PLAN_EXCEEDED'): fact would grow over plan and the
            policy wants a confirmation that was not given
    """
    if absolute and delta < 0:
        raise ScanValidationError('INVALID_QUANTITY', requested=delta)

    new_fact = delta if absolute else max(0, line.quantity_fact + delta)

    if (
        new_fact > line.quantity_plan
        and new_fact > line.quantity_fact
        and policy.surplus_requires_confirmation
        and not confirmed
    ):
        raise PolicyViolation(
            'PLAN_EXCEEDED',
            line_id=line.id,
            plan=line.quantity_plan,
            fact=line.quantity_fact,
            requested=new_fact,
        )

    if new_fact == line.quantity_fact and not scanned:
        return line

    changes = {
        'quantity_fact': new_fact,
        'status': derive_status(new_fact, line.quantity_plan),
        'revision': line.revision + 1,
    }
    if scanned:
        changes['scan_count'] = line.scan_count + 1
        changes['last_scan_at'] = now or timezone.now()
    return replace(line, **changes)


class CompletionCooldown:
    """
    Debounce window opened when a line reaches its plan.

    Scanner bounce and double taps arrive within a fraction of a second;
    further deltas for the same line inside the window are coalesced.
    The clock is injectable so tests can step time by hand.
    """

    def __init__(self, window_ms: int = 1000, clock: Callable[[], float] = time.monotonic):
        self.window = window_ms / 1000
        self._clock = clock
        self._until: dict[str, float] = {}

    def arm(self, key: str) -> None:
        self._until[key] = self._clock() + self.window

    def is_active(self, key: str) -> bool:
        until = self._until.get(key)
        if until is None:
            return False
        if self._clock() < until:
            return True
        del self._until[key]
        return False

    def cancel(self, key: str) -> None:
        self._until.pop(key, None)


class LineReconciler:
    """
    apply_delta() bound to a policy and a completion cooldown.

    Usage:
        reconciler = LineReconciler(get_policy('receiving'), CompletionCooldown())
        line = reconciler.apply(line, +1, scanned=True)
    """

    def __init__(self, policy: DocumentPolicy, cooldown: CompletionCooldown | None = None):
        self.policy = policy
        self.cooldown = cooldown

    def apply(self, line: LineSnapshot, delta: int, *, absolute: bool = False,
              confirmed: bool = False, scanned: bool = False, now=None) -> LineSnapshot:
        """
        Apply a delta, honouring the completion cooldown.

        Raises:
            ConcurrencyGuard('DUPLICATE_SCAN'): line reached plan less than a
                cooldown window ago; the caller keeps the previous result
            PolicyViolation, ScanValidationError: see apply_delta()
        """
        if self.cooldown is not None and self.cooldown.is_active(line.id):
            raise ConcurrencyGuard('DUPLICATE_SCAN', line_id=line.id)

        updated = apply_delta(
            line, delta, self.policy,
            absolute=absolute, confirmed=confirmed, scanned=scanned, now=now,
        )

        just_completed = (
            line.quantity_plan > 0
            and line.quantity_fact < line.quantity_plan <= updated.quantity_fact
        )
        if just_completed and self.cooldown is not None:
            self.cooldown.arm(line.id)
            logger.debug("line.cooldown.armed", extra={"line_id": line.id})
        return updated
