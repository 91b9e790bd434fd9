"""
Tests for ScanSession and the Floor facade (memory adapters).
"""

import pytest

from floorman.exceptions import DataUnavailable, NotFound, PolicyViolation
from floorman.models.enums import (
    DiscrepancyKind,
    DocumentStatus,
    DocumentType,
    LineStatus,
    RouteStepStatus,
)
from floorman.protocols.snapshots import DiscrepancyRecord
from floorman.service import Floor
from floorman.services.session import OutcomeKind
from floorman.tests.factories import FailingSyncQueue


class TestReceivingSession:
    """Scans on a plain (not cell-scoped) document."""

    @pytest.fixture
    def session(self, floor, receiving_doc):
        return floor.open('receiving', 'RCV-1')

    def test_scan_updates_line_and_document(self, session, sync_queue, store):
        outcome = session.scan('4601111')

        assert outcome.accepted
        assert outcome.line.quantity_fact == 1
        assert outcome.line.status == LineStatus.PARTIAL
        assert session.document.status == DocumentStatus.IN_PROGRESS
        assert store.get('receiving', 'RCV-1').status == DocumentStatus.IN_PROGRESS
        assert len(sync_queue.of_type('update_line')) == 1

    def test_unknown_code_is_rejected_not_raised(self, session):
        outcome = session.scan('000000')

        assert outcome.kind == OutcomeKind.REJECTED
        assert outcome.rejection.code == 'CODE_NOT_FOUND'
        assert outcome.rejection.hints == ['Товар R1', 'Товар R2']

    def test_cell_scan_is_unexpected(self, session):
        outcome = session.scan('A1-01')
        assert outcome.rejection.code == 'UNEXPECTED_CELL'
        assert session.active_cell_id is None

    def test_bounce_returns_previous_outcome(self, session, clock, sync_queue):
        session.update_quantity('R2', 2)
        completed = session.scan('4602222')
        assert completed.line.status == LineStatus.COMPLETED

        clock.advance(150)
        bounce = session.scan('4602222', confirmed=True)

        assert bounce is completed
        assert session.line('R2').quantity_fact == 3
        assert len(sync_queue.of_type('update_line')) == 2

    def test_over_plan_needs_confirmation(self, session, clock):
        session.take_all('R2')
        clock.advance(2000)

        with pytest.raises(PolicyViolation):
            session.scan('4602222')

        outcome = session.scan('4602222', confirmed=True)
        assert outcome.line.status == LineStatus.OVER

    def test_take_all_never_exceeds_plan(self, session):
        outcome = session.take_all('R1')
        assert outcome.line.quantity_fact == 5
        assert outcome.line.status == LineStatus.COMPLETED

    def test_unknown_line(self, session):
        with pytest.raises(NotFound) as exc:
            session.update_quantity('nope', 1)
        assert exc.value.code == 'LINE_NOT_FOUND'

    def test_finish_then_scans_refused(self, session):
        session.take_all('R1')
        assert session.finish().needs_confirmation

        result = session.finish(force=True)
        assert result.document.status == DocumentStatus.COMPLETED
        assert result.follow_on.doc_type == DocumentType.PLACEMENT

        with pytest.raises(PolicyViolation) as exc:
            session.scan('4601111')
        assert exc.value.code == 'DOCUMENT_COMPLETED'

    def test_counters_match_lines(self, session):
        session.take_all('R1')
        session.update_quantity('R2', 1)

        done = sum(1 for line in session.lines if line.is_done)
        assert session.document.completed_lines == done == 1
        assert session.document.total_lines == 2

    def test_take_all_reads_plan_under_lock(self, session, monkeypatch):
        held = []
        line = session.line

        def spy(line_id):
            held.append(session._lock.locked())
            return line(line_id)

        monkeypatch.setattr(session, 'line', spy)
        session.take_all('R1')

        assert held and all(held)

    def test_take_all_on_completed_document(self, session):
        session.finish(force=True)

        with pytest.raises(PolicyViolation) as exc:
            session.take_all('nope')
        assert exc.value.code == 'DOCUMENT_COMPLETED'

    def test_offer_completion_when_every_line_at_plan(self, session, clock):
        assert not session.take_all('R1').offer_completion
        session.update_quantity('R2', 2)
        clock.advance(2000)

        assert session.scan('4602222').offer_completion

    def test_stats_and_visible_order(self, session):
        assert [line.id for line in session.visible_lines()] == ['R1', 'R2']
        session.update_quantity('R2', 1)

        stats = session.stats()
        assert (stats.not_started, stats.in_progress, stats.total_plan, stats.total_fact) == (1, 1, 8, 1)
        assert session.progress == 0
        assert [line.id for line in session.visible_lines()] == ['R2', 'R1']
        assert session.can_complete() == (True, ['1 позиций не обработано', '1 позиций обработано частично'])

    def test_finish_reports_warnings(self, session):
        session.take_all('R1')
        result = session.finish()

        assert result.needs_confirmation
        assert result.warnings == ('1 позиций не обработано',)

    def test_discrepancies_appended_after_completion(self, session, store):
        session.take_all('R1')
        session.update_quantity('R2', 2)
        completed = session.finish(force=True).document
        record = DiscrepancyRecord('R2', 'Товар R2', 3, 2, DiscrepancyKind.SHORTAGE, tag='damaged')

        document = session.attach_discrepancies([record])

        assert document.discrepancies == completed.discrepancies + (record,)
        assert document.status == DocumentStatus.COMPLETED
        assert (document.completed_lines, document.total_lines) == (1, 2)
        assert store.get('receiving', 'RCV-1') == document
        assert [line.quantity_fact for line in store.get_lines('receiving', 'RCV-1')] == [5, 2]
        with pytest.raises(PolicyViolation):
            session.update_quantity('R2', 1)

    def test_failed_completion_keeps_session_open(self, store, receiving_doc, clock):
        queue = FailingSyncQueue()
        floor = Floor(store=store, sync_queue=queue, sources=[], clock=clock)
        session = floor.open('receiving', 'RCV-1')
        session.take_all('R1')

        with pytest.raises(ConnectionError):
            session.finish(force=True)

        assert session.document.status == DocumentStatus.IN_PROGRESS
        assert store.get('receiving', 'RCV-1').status == DocumentStatus.IN_PROGRESS
        assert store.get('placement', 'RCV-1-placement') is None

        session.update_quantity('R2', 1)
        assert store.get('receiving', 'RCV-1').status == DocumentStatus.IN_PROGRESS

        queue.fail_on = None
        assert session.finish(force=True).document.is_completed
        assert store.get('receiving', 'RCV-1').is_completed

    def test_unexpected_resolution_type(self, session, monkeypatch):
        monkeypatch.setattr(session.resolver, 'resolve', lambda code, context: object())

        with pytest.raises(TypeError):
            session.scan('4601111')
        assert session.line('R1').quantity_fact == 0


class TestPickingSession:
    """Route-driven scans."""

    @pytest.fixture
    def session(self, floor):
        return floor.open('picking', 'PCK-1')

    def test_wrong_cell_raises_without_state_change(self, session):
        with pytest.raises(PolicyViolation) as exc:
            session.scan('A1-02')

        assert exc.value.code == 'WRONG_CELL'
        assert session.active_cell_id is None
        assert session.route.index == 0

    def test_unknown_code_is_rejected_with_step_hints(self, session):
        session.scan('A1-01')
        outcome = session.scan('999888')

        assert outcome.kind == OutcomeKind.REJECTED
        assert outcome.rejection.code == 'CODE_NOT_FOUND'
        assert outcome.rejection.hints == ['Товар K1', 'Товар K2']
        assert session.route.index == 0
        assert session.route.awaiting_product

    def test_product_of_another_cell(self, session):
        session.scan('A1-01')

        with pytest.raises(PolicyViolation) as exc:
            session.scan('4603333')
        assert exc.value.code == 'WRONG_CELL_PRODUCT'
        assert session.line('K3').quantity_fact == 0

    def test_full_route(self, session):
        assert session.scan('a1-01').kind == OutcomeKind.CELL
        session.scan('4603331')
        session.scan('4603332')
        outcome = session.scan('4603331')

        ticket = outcome.route.advance
        assert ticket is not None
        state = session.confirm_advance(ticket)
        assert state.step.cell_id == 'A1-02'
        assert session.active_cell_id is None

        session.scan('A1-02')
        outcome = session.scan('4603333')
        session.confirm_advance(outcome.route.advance)

        assert session.route_complete
        assert not session.finish().needs_confirmation

    def test_not_in_cell_feeds_finish(self, session):
        session.scan('A1-01')
        session.scan('4603331')
        records = session.not_in_cell()

        assert [r.line_id for r in records] == ['K1', 'K2']
        assert session.route.steps[0].status == RouteStepStatus.SKIPPED

        result = session.finish()
        assert result.needs_confirmation
        tags = {r.line_id: r.tag for r in result.discrepancies}
        assert tags == {'K1': 'missing', 'K2': 'missing', 'K3': ''}

    def test_open_is_cached(self, floor, session):
        assert floor.open(DocumentType.PICKING, 'PCK-1') is session
        floor.close('picking', 'PCK-1')
        assert floor.open('picking', 'PCK-1') is not session

    def test_reopen_resumes_route(self, floor, session):
        session.scan('A1-01')
        session.take_all('K1')
        session.take_all('K2')
        floor.close('picking', 'PCK-1')

        reopened = floor.open('picking', 'PCK-1')
        assert reopened.route.current.cell_id == 'A1-02'


class TestInventorySession:
    """Blind count on an operator-created document."""

    def test_unknown_barcode_after_cell(self, floor):
        session = floor.create('inventory', scope='cell', cells=['b2-05'])

        first = session.scan('999888')
        assert first.rejection.code == 'SCAN_CELL_FIRST'

        session.scan('B2-05')
        outcome = session.scan('999888')

        assert outcome.created
        assert (outcome.line.quantity_plan, outcome.line.quantity_fact) == (0, 1)
        assert outcome.line.status == LineStatus.OVER
        assert session.document.total_lines == 1

        again = session.scan('999888')
        assert not again.created
        assert again.line.quantity_fact == 2

    def test_stream_mode_suppresses_line_events(self, floor, observer):
        session = floor.create('inventory', stream_mode=True)
        session.scan('C3-02')
        session.scan('123')

        assert 'scan.line' not in observer.names()
        assert 'scan.cell' in observer.names()


class TestPlacementSession:
    """Cell assignment and zone ranking."""

    def test_scan_assigns_active_cell(self, floor, store, receiving_doc):
        receiving = floor.open('receiving', 'RCV-1')
        receiving.take_all('R1')
        receiving.take_all('R2')
        follow = receiving.finish().follow_on

        session = floor.open('placement', follow.id)
        session.scan('B2-05')
        outcome = session.scan('4601111')

        assert outcome.line.cell_id == 'B2-05'
        assert store.get_lines('placement', follow.id)[0].cell_id == 'B2-05'

    def test_zone_lock(self, floor, receiving_doc):
        receiving = floor.open('receiving', 'RCV-1')
        receiving.take_all('R1')
        follow = receiving.finish(force=True).follow_on
        session = floor.open('placement', follow.id)

        for cell in ['C1-01', 'C1-02', 'C1-03']:
            session.scan(cell)

        assert session.lock_zone() == 'C'
        assert [line.id for line in session.visible_lines()] == [f'{follow.id}-1']


class TestFloor:
    """Tests for the Floor facade."""

    def test_unknown_document(self, floor):
        with pytest.raises(DataUnavailable):
            floor.open('shipment', 'SHP-404')

    def test_completed_session_leaves_cache(self, floor, receiving_doc):
        session = floor.open('receiving', 'RCV-1')
        session.take_all('R1')
        assert session.finish().needs_confirmation
        assert floor.open('receiving', 'RCV-1') is session

        session.finish(force=True)

        assert (DocumentType.RECEIVING, 'RCV-1') not in floor._sessions
        reopened = floor.open('receiving', 'RCV-1')
        assert reopened is not session
        assert reopened.document.is_completed

    def test_policy_lookup(self, floor):
        assert floor.policy('picking').auto_advance
        assert not floor.policy('return').surplus_requires_confirmation
