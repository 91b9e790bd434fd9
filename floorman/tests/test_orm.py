"""
Tests for the ORM store, the outbox and the recount command.
"""

from dataclasses import replace
from io import StringIO

import pytest
from django.core.management import call_command

from floorman.adapters.orm import OrmDocumentStore, OutboxSyncQueue
from floorman.exceptions import PolicyViolation
from floorman.models import Document, Line, SyncAction
from floorman.models.enums import DiscrepancyKind, DocumentStatus, DocumentType, LineStatus
from floorman.protocols.snapshots import DiscrepancyRecord, DocumentSnapshot
from floorman.service import Floor
from floorman.tests.factories import FailingSyncQueue, StaticPlanSource, make_line, make_plan


pytestmark = pytest.mark.django_db


@pytest.fixture
def orm_store():
    return OrmDocumentStore()


@pytest.fixture
def cached_doc(orm_store):
    document = DocumentSnapshot(id='RCV-1', doc_type=DocumentType.RECEIVING, total_lines=3)
    lines = [
        make_line('z', plan=2, document_id='RCV-1'),
        make_line('a', plan=1, document_id='RCV-1'),
        make_line('m', plan=4, document_id='RCV-1', cell_id='A1-01'),
    ]
    orm_store.bulk_put(document, lines)
    return document, lines


class TestOrmDocumentStore:
    """Tests for OrmDocumentStore."""

    def test_get_filters_by_type(self, orm_store, cached_doc):
        assert orm_store.get('receiving', 'RCV-1').total_lines == 3
        assert orm_store.get('picking', 'RCV-1') is None
        assert orm_store.get('receiving', 'NOPE') is None

    def test_lines_keep_insertion_order(self, orm_store, cached_doc):
        lines = orm_store.get_lines('receiving', 'RCV-1')

        assert [line.id for line in lines] == ['z', 'a', 'm']
        assert lines[0].cell_id is None
        assert lines[2].cell_id == 'A1-01'

    def test_stale_revision_ignored(self, orm_store, cached_doc):
        _, lines = cached_doc
        newer = replace(lines[0], quantity_fact=2, status=LineStatus.COMPLETED, revision=2)
        older = replace(lines[0], quantity_fact=1, status=LineStatus.PARTIAL, revision=1)

        orm_store.upsert_line(newer)
        orm_store.upsert_line(older)

        row = Line.objects.get(pk='z')
        assert row.quantity_fact == 2
        assert row.revision == 2

    def test_upsert_is_idempotent(self, orm_store, cached_doc):
        document, lines = cached_doc
        orm_store.bulk_put(document, lines)

        assert Document.objects.count() == 1
        assert Line.objects.count() == 3
        assert list(Line.objects.order_by('position').values_list('id', flat=True)) == ['z', 'a', 'm']

    def test_discrepancies_round_trip(self, orm_store, cached_doc):
        document, _ = cached_doc
        record = DiscrepancyRecord('z', 'Товар z', 2, 0, DiscrepancyKind.SHORTAGE, tag='missing')
        orm_store.upsert_document(replace(document, status=DocumentStatus.COMPLETED, discrepancies=(record,)))

        loaded = orm_store.get('receiving', 'RCV-1')
        assert loaded.is_completed
        assert loaded.discrepancies == (record,)

    def test_completed_document_not_reopened(self, orm_store, cached_doc):
        document, _ = cached_doc
        orm_store.upsert_document(replace(document, status=DocumentStatus.COMPLETED))

        with pytest.raises(PolicyViolation) as exc:
            orm_store.upsert_document(replace(document, status=DocumentStatus.IN_PROGRESS))

        assert exc.value.code == 'DOCUMENT_COMPLETED'
        assert Document.objects.get(pk='RCV-1').status == DocumentStatus.COMPLETED


class TestOutboxSyncQueue:
    """Tests for OutboxSyncQueue."""

    def test_enqueue_rows(self):
        queue = OutboxSyncQueue()
        queue.enqueue('update_line', make_line('x', document_id='RCV-1').to_payload())
        queue.enqueue('complete_doc', {'id': 'RCV-1', 'status': 'completed'})

        rows = list(SyncAction.objects.unsent())
        assert [(row.action_type, row.document_id) for row in rows] == [
            ('update_line', 'RCV-1'),
            ('complete_doc', 'RCV-1'),
        ]
        assert rows[0].payload['status'] == 'pending'


class TestOrmFlow:
    """End to end on the database adapters."""

    def test_receiving_to_placement(self):
        plan = make_plan('RCV-7', DocumentType.RECEIVING, [('a', '111', 2, None), ('b', '222', 1, None)])
        floor = Floor(
            store=OrmDocumentStore(),
            sync_queue=OutboxSyncQueue(),
            sources=[StaticPlanSource(plans={'RCV-7': plan})],
        )

        session = floor.open('receiving', 'RCV-7')
        session.scan('111')
        session.scan('111')
        result = session.finish()

        assert result.needs_confirmation
        result = session.finish(force=True)

        row = Document.objects.get(pk='RCV-7')
        assert row.status == DocumentStatus.COMPLETED
        assert row.completed_lines == 1
        assert row.discrepancies[0]['kind'] == 'shortage'

        placement = Document.objects.get(pk='RCV-7-placement')
        assert placement.source_document_id == 'RCV-7'
        assert list(placement.lines.values_list('quantity_plan', 'quantity_fact')) == [(2, 0)]

        assert SyncAction.objects.filter(action_type='update_line').count() == 2
        assert SyncAction.objects.filter(action_type='complete_doc').count() == 1

    def test_failed_completion_rolls_back(self):
        plan = make_plan('RCV-8', DocumentType.RECEIVING, [('a', '111', 1, None)])
        queue = FailingSyncQueue()
        floor = Floor(
            store=OrmDocumentStore(),
            sync_queue=queue,
            sources=[StaticPlanSource(plans={'RCV-8': plan})],
        )
        session = floor.open('receiving', 'RCV-8')
        session.scan('111')

        with pytest.raises(ConnectionError):
            session.finish()

        assert Document.objects.get(pk='RCV-8').status == DocumentStatus.IN_PROGRESS
        assert session.document.status == DocumentStatus.IN_PROGRESS
        assert not Document.objects.filter(pk='RCV-8-placement').exists()

        queue.fail_on = None
        assert session.finish().document.is_completed
        assert Document.objects.get(pk='RCV-8').status == DocumentStatus.COMPLETED
        assert Document.objects.filter(pk='RCV-8-placement').exists()


class TestRecountCommand:
    """Tests for the recount_documents management command."""

    def test_dry_run_reports_only(self, cached_doc):
        Line.objects.filter(pk='z').update(quantity_fact=2, status=LineStatus.COMPLETED)
        out = StringIO()

        call_command('recount_documents', '--dry-run', stdout=out)

        assert 'RCV-1: 0/3 -> 1/3' in out.getvalue()
        assert Document.objects.get(pk='RCV-1').completed_lines == 0

    def test_fixes_counters(self, cached_doc):
        Line.objects.filter(pk='z').update(quantity_fact=2, status=LineStatus.COMPLETED)
        Document.objects.filter(pk='RCV-1').update(total_lines=9)

        call_command('recount_documents', stdout=StringIO())

        row = Document.objects.get(pk='RCV-1')
        assert (row.completed_lines, row.total_lines) == (1, 3)


class TestAdmin:
    """Tests for the read-only admin and its actions."""

    @pytest.fixture
    def messages(self, monkeypatch):
        sent = []
        monkeypatch.setattr(
            'django.contrib.admin.ModelAdmin.message_user',
            lambda self, request, message, *args, **kwargs: sent.append(str(message)),
        )
        return sent

    def test_models_registered_read_only(self, rf):
        from django.contrib import admin

        for model in (Document, Line, SyncAction):
            assert admin.site.is_registered(model)
            model_admin = admin.site._registry[model]
            assert not model_admin.has_add_permission(rf.get('/'))
            assert not model_admin.has_delete_permission(rf.get('/'))

    def test_recount_action(self, cached_doc, rf, messages):
        from django.contrib import admin

        Line.objects.filter(pk='z').update(quantity_fact=2, status=LineStatus.COMPLETED)
        model_admin = admin.site._registry[Document]

        model_admin.recount_documents(rf.get('/'), Document.objects.all())

        assert Document.objects.get(pk='RCV-1').completed_lines == 1
        assert messages == ['Исправлено документов: 1.']

    def test_mark_sent_action(self, rf, messages):
        from django.contrib import admin

        OutboxSyncQueue().enqueue('complete_doc', {'id': 'RCV-1'})
        admin.site._registry[SyncAction].mark_sent(rf.get('/'), SyncAction.objects.all())

        assert not SyncAction.objects.unsent().exists()
        assert messages == ['Отмечено: 1.']
