"""
Tests for line reconciliation: quantity deltas, derived status, cooldown.
"""

import pytest

from floorman.exceptions import ConcurrencyGuard, PolicyViolation, ScanValidationError
from floorman.models.enums import DocumentType, LineStatus
from floorman.policies import get_policy
from floorman.services.reconciler import (
    CompletionCooldown,
    LineReconciler,
    apply_delta,
    count_completed,
    derive_status,
)
from floorman.tests.factories import make_line


class TestDeriveStatus:
    """Tests for derive_status()."""

    @pytest.mark.parametrize('fact,plan,expected', [
        (0, 10, LineStatus.PENDING),
        (0, 0, LineStatus.PENDING),
        (3, 10, LineStatus.PARTIAL),
        (10, 10, LineStatus.COMPLETED),
        (11, 10, LineStatus.OVER),
        (1, 0, LineStatus.OVER),
    ])
    def test_status_table(self, fact, plan, expected):
        assert derive_status(fact, plan) == expected

    def test_count_completed_includes_over(self):
        lines = [make_line('a', 5, 5), make_line('b', 5, 6), make_line('c', 5, 2), make_line('d', 5, 0)]
        assert count_completed(lines) == 2


class TestApplyDelta:
    """Tests for apply_delta()."""

    def test_scan_sequence_reaches_completed(self, receiving_policy):
        """Ten +1 scans on plan 10: pending, partial x9 in between, completed at 10."""
        line = make_line(plan=10)
        statuses = [line.status]
        for _ in range(10):
            line = apply_delta(line, 1, receiving_policy, scanned=True)
            statuses.append(line.status)

        assert statuses[0] == LineStatus.PENDING
        assert statuses[1:10] == [LineStatus.PARTIAL] * 9
        assert statuses[10] == LineStatus.COMPLETED
        assert line.quantity_fact == 10
        assert line.scan_count == 10
        assert line.revision == 10

    def test_fact_never_negative(self, receiving_policy):
        line = make_line(plan=5, fact=2)
        updated = apply_delta(line, -5, receiving_policy)

        assert updated.quantity_fact == 0
        assert updated.status == LineStatus.PENDING

    def test_absolute_sets_quantity(self, receiving_policy):
        updated = apply_delta(make_line(plan=5, fact=1), 4, receiving_policy, absolute=True)
        assert updated.quantity_fact == 4
        assert updated.status == LineStatus.PARTIAL

    def test_absolute_negative_rejected(self, receiving_policy):
        with pytest.raises(ScanValidationError) as exc:
            apply_delta(make_line(plan=5), -1, receiving_policy, absolute=True)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_surplus_requires_confirmation(self, receiving_policy):
        """Receiving at plan: +1 raises, +1 confirmed gives over."""
        line = make_line(plan=5, fact=5)

        with pytest.raises(PolicyViolation) as exc:
            apply_delta(line, 1, receiving_policy)

        assert exc.value.code == 'PLAN_EXCEEDED'
        assert exc.value.data['plan'] == 5

        updated = apply_delta(line, 1, receiving_policy, confirmed=True)
        assert updated.quantity_fact == 6
        assert updated.status == LineStatus.OVER

    def test_decrease_while_over_needs_no_confirmation(self, receiving_policy):
        updated = apply_delta(make_line(plan=5, fact=8), -1, receiving_policy)
        assert updated.quantity_fact == 7
        assert updated.status == LineStatus.OVER

    @pytest.mark.parametrize('doc_type', [DocumentType.RETURN, DocumentType.INVENTORY])
    def test_surplus_free_for_blind_counts(self, doc_type):
        updated = apply_delta(make_line(plan=1, fact=1), 3, get_policy(doc_type))
        assert updated.quantity_fact == 4
        assert updated.status == LineStatus.OVER

    def test_noop_returns_same_object(self, receiving_policy):
        line = make_line(plan=5, fact=0)
        assert apply_delta(line, -1, receiving_policy) is line


class TestCompletionCooldown:
    """Tests for the duplicate-scan window."""

    def test_window_expires(self, clock):
        cooldown = CompletionCooldown(1000, clock=clock)
        cooldown.arm('L1')

        assert cooldown.is_active('L1')
        clock.advance(999)
        assert cooldown.is_active('L1')
        clock.advance(1)
        assert not cooldown.is_active('L1')

    def test_cancel(self, clock):
        cooldown = CompletionCooldown(1000, clock=clock)
        cooldown.arm('L1')
        cooldown.cancel('L1')
        assert not cooldown.is_active('L1')

    def test_keys_are_independent(self, clock):
        cooldown = CompletionCooldown(1000, clock=clock)
        cooldown.arm('L1')
        assert not cooldown.is_active('L2')


class TestLineReconciler:
    """Tests for LineReconciler.apply()."""

    def test_bounce_after_completion_is_guarded(self, reconciler, clock):
        line = reconciler.apply(make_line(plan=2, fact=1), 1, scanned=True)
        assert line.status == LineStatus.COMPLETED

        clock.advance(200)
        with pytest.raises(ConcurrencyGuard) as exc:
            reconciler.apply(line, 1, scanned=True, confirmed=True)
        assert exc.value.code == 'DUPLICATE_SCAN'

    def test_scan_accepted_after_window(self, reconciler, clock):
        line = reconciler.apply(make_line(plan=1), 1, scanned=True)
        clock.advance(1000)

        with pytest.raises(PolicyViolation):
            reconciler.apply(line, 1, scanned=True)

        updated = reconciler.apply(line, 1, scanned=True, confirmed=True)
        assert updated.quantity_fact == 2

    def test_partial_progress_does_not_arm(self, reconciler):
        line = reconciler.apply(make_line(plan=5), 1, scanned=True)
        line = reconciler.apply(line, 1, scanned=True)
        assert line.quantity_fact == 2

    def test_zero_plan_line_does_not_arm(self, clock):
        reconciler = LineReconciler(get_policy(DocumentType.INVENTORY), CompletionCooldown(1000, clock=clock))
        line = reconciler.apply(make_line(plan=0), 1, scanned=True)
        line = reconciler.apply(line, 1, scanned=True)
        assert line.quantity_fact == 2
