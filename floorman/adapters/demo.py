"""
Demo plan source — deterministic documents for demo mode.

Any document id starting with "demo-" resolves to a generated plan; every
other id is unknown. The same id always yields the same plan.

Usage in settings.py:
    FLOORMAN = {
        "DEMO_MODE": True,
    }
"""

from __future__ import annotations

import hashlib
import logging

from floorman.models.enums import DocumentType, InventoryScope, ReturnKind
from floorman.protocols.source import CountedItem, DeclaredItem, PlanResult

logger = logging.getLogger(__name__)

DEMO_PREFIX = 'demo-'

# (product_id, name, sku, barcode)
DEMO_PRODUCTS = [
    ('P-001', 'Молоко 3,2% 1 л', 'MLK-32', '4601234000011'),
    ('P-002', 'Кефир 1% 0,9 л', 'KEF-01', '4601234000028'),
    ('P-003', 'Сыр Российский 200 г', 'CHS-RU', '4601234000035'),
    ('P-004', 'Масло сливочное 180 г', 'BTR-18', '4601234000042'),
    ('P-005', 'Йогурт клубничный 125 г', 'YGT-ST', '4601234000059'),
    ('P-006', 'Творог 5% 350 г', 'TVR-05', '4601234000066'),
    ('P-007', 'Сметана 20% 300 г', 'SMT-20', '4601234000073'),
    ('P-008', 'Ряженка 4% 0,5 л', 'RJZ-04', '4601234000080'),
]

DEMO_CELLS = ['A1-01', 'A1-02', 'A1-05', 'B2-01', 'B2-05', 'C3-02']


def _seed(doc_id: str) -> int:
    return int(hashlib.sha1(doc_id.encode('utf-8')).hexdigest()[:8], 16)


class DemoPlanSource:
    """PlanSource producing stable demo documents."""

    name = 'demo'

    def __init__(self, lines_per_document: int = 5):
        self.lines_per_document = lines_per_document

    def fetch_plan(self, doc_type, doc_id: str) -> PlanResult | None:
        if not doc_id.startswith(DEMO_PREFIX):
            return None
        doc_type = DocumentType(doc_type)
        seed = _seed(doc_id)
        count = min(self.lines_per_document, len(DEMO_PRODUCTS))
        start = seed % len(DEMO_PRODUCTS)

        with_cells = doc_type in (DocumentType.PICKING, DocumentType.INVENTORY)
        declared = []
        for index in range(count):
            product_id, name, sku, barcode = DEMO_PRODUCTS[(start + index) % len(DEMO_PRODUCTS)]
            declared.append(DeclaredItem(
                uid=f"{doc_id}-{index + 1}",
                product_id=product_id,
                product_name=name,
                sku=sku,
                barcode=barcode,
                quantity=1 + (seed >> index) % 10,
                cell_id=DEMO_CELLS[(seed + index) % len(DEMO_CELLS)] if with_cells else None,
            ))

        fields = {}
        if doc_type == DocumentType.INVENTORY:
            fields = {'scope': InventoryScope.FULL.value, 'zones': [], 'cells': []}
        elif doc_type == DocumentType.RETURN:
            fields = {'operation': ReturnKind.RETURN.value}
        elif doc_type == DocumentType.SHIPMENT:
            fields = {'carrier': 'Demo Logistics', 'ttn': ''}

        logger.debug("demo.plan", extra={"document_id": doc_id, "lines": len(declared)})
        return PlanResult(
            document_id=doc_id,
            doc_type=doc_type,
            declared=tuple(declared),
            counted=tuple(CountedItem(product_id=item.product_id, quantity=0) for item in declared),
            number=f"DEMO-{seed % 10000:04d}",
            partner_name='Демо поставщик',
            fields=fields,
        )
