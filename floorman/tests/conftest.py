"""
Pytest fixtures for Floorman tests.
"""

import pytest

from floorman.adapters import reset_adapters
from floorman.adapters.memory import MemoryDocumentStore, MemorySyncQueue
from floorman.adapters.noop import RecordingObserver
from floorman.models.enums import DocumentStatus, DocumentType
from floorman.policies import get_policy
from floorman.protocols.snapshots import DocumentSnapshot
from floorman.service import Floor, reset_floor
from floorman.services.lifecycle import DocumentLifecycle
from floorman.services.reconciler import CompletionCooldown, LineReconciler
from floorman.tests.factories import FakeClock, StaticPlanSource, make_line, make_plan


@pytest.fixture(autouse=True)
def _reset_singletons():
    reset_adapters()
    reset_floor()
    yield
    reset_adapters()
    reset_floor()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def sync_queue():
    return MemorySyncQueue()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def lifecycle(store, sync_queue, observer):
    return DocumentLifecycle(store, sync_queue, observer=observer)


@pytest.fixture
def receiving_policy():
    return get_policy(DocumentType.RECEIVING)


@pytest.fixture
def reconciler(receiving_policy, clock):
    return LineReconciler(receiving_policy, CompletionCooldown(1000, clock=clock))


@pytest.fixture
def receiving_doc(store):
    """Receiving document with two lines, cached in the memory store."""
    document = DocumentSnapshot(id='RCV-1', doc_type=DocumentType.RECEIVING, status=DocumentStatus.NEW)
    lines = [
        make_line('R1', plan=5, document_id='RCV-1', barcode='4601111'),
        make_line('R2', plan=3, document_id='RCV-1', barcode='4602222'),
    ]
    store.bulk_put(document, lines)
    return document, lines


@pytest.fixture
def picking_plan():
    return make_plan('PCK-1', DocumentType.PICKING, [
        ('K1', '4603331', 2, 'A1-01'),
        ('K2', '4603332', 1, 'A1-01'),
        ('K3', '4603333', 1, 'A1-02'),
    ])


@pytest.fixture
def floor(store, sync_queue, observer, clock, picking_plan):
    """Floor on memory adapters with one remote source."""
    source = StaticPlanSource(plans={'PCK-1': picking_plan})
    return Floor(store=store, sync_queue=sync_queue, sources=[source], observer=observer, clock=clock)
