"""
ORM adapters — the local cache and outbox on the Django database.

Usage in settings.py (these are the defaults):
    FLOORMAN = {
        "STORE": "floorman.adapters.orm.OrmDocumentStore",
        "SYNC_QUEUE": "floorman.adapters.orm.OutboxSyncQueue",
    }
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from django.db import transaction

from floorman.exceptions import PolicyViolation
from floorman.models.document import Document
from floorman.models.enums import (
    DiscrepancyKind,
    DocumentStatus,
    DocumentType,
    LineStatus,
    SyncActionType,
)
from floorman.models.line import Line
from floorman.models.sync_action import SyncAction
from floorman.protocols.snapshots import DiscrepancyRecord, DocumentSnapshot, LineSnapshot

logger = logging.getLogger(__name__)


def document_to_snapshot(row: Document) -> DocumentSnapshot:
    return DocumentSnapshot(
        id=row.id,
        doc_type=DocumentType(row.doc_type),
        status=DocumentStatus(row.status),
        total_lines=row.total_lines,
        completed_lines=row.completed_lines,
        created_at=row.created_at,
        updated_at=row.updated_at,
        number=row.number,
        partner_name=row.partner_name,
        source_document_id=row.source_document_id,
        fields=dict(row.fields or {}),
        discrepancies=tuple(
            DiscrepancyRecord(
                line_id=item['line_id'],
                product_name=item.get('product_name', ''),
                planned=item['planned'],
                actual=item['actual'],
                kind=DiscrepancyKind(item['kind']),
                tag=item.get('tag', ''),
            )
            for item in (row.discrepancies or [])
        ),
    )


def line_to_snapshot(row: Line) -> LineSnapshot:
    return LineSnapshot(
        id=row.id,
        document_id=row.document_id,
        product_id=row.product_id,
        product_name=row.product_name,
        product_sku=row.product_sku,
        barcode=row.barcode,
        quantity_plan=row.quantity_plan,
        quantity_fact=row.quantity_fact,
        status=LineStatus(row.status),
        cell_id=row.cell_id or None,
        scan_count=row.scan_count,
        last_scan_at=row.last_scan_at,
        revision=row.revision,
    )


def _document_values(document: DocumentSnapshot) -> dict[str, Any]:
    values = {
        'doc_type': document.doc_type.value,
        'status': DocumentStatus(document.status).value,
        'number': document.number,
        'partner_name': document.partner_name,
        'total_lines': document.total_lines,
        'completed_lines': document.completed_lines,
        'source_document_id': document.source_document_id,
        'fields': document.fields,
        'discrepancies': [record.to_payload() for record in document.discrepancies],
    }
    if document.created_at is not None:
        values['created_at'] = document.created_at
    if document.updated_at is not None:
        values['updated_at'] = document.updated_at
    return values


def _line_values(line: LineSnapshot) -> dict[str, Any]:
    return {
        'document_id': line.document_id,
        'product_id': line.product_id,
        'product_name': line.product_name,
        'product_sku': line.product_sku,
        'barcode': line.barcode,
        'quantity_plan': line.quantity_plan,
        'quantity_fact': line.quantity_fact,
        'status': LineStatus(line.status).value,
        'cell_id': line.cell_id or '',
        'scan_count': line.scan_count,
        'last_scan_at': line.last_scan_at,
        'revision': line.revision,
    }


class OrmDocumentStore:
    """
    DocumentStore on the floorman tables.

    Concurrency:
        - Upserts run under transaction.atomic()
        - Line upserts lock the row and skip writes with an older revision
        - A completed document row is never written back to another status
    """

    def get(self, doc_type, doc_id: str) -> DocumentSnapshot | None:
        row = Document.objects.of_type(DocumentType(doc_type)).filter(pk=doc_id).first()
        return document_to_snapshot(row) if row is not None else None

    def get_lines(self, doc_type, doc_id: str) -> list[LineSnapshot]:
        rows = Line.objects.filter(
            document_id=doc_id,
            document__doc_type=DocumentType(doc_type),
        ).order_by('position', 'pk')
        return [line_to_snapshot(row) for row in rows]

    def upsert_line(self, line: LineSnapshot) -> None:
        values = _line_values(line)
        with transaction.atomic():
            current = Line.objects.select_for_update().filter(pk=line.id).first()
            if current is None:
                position = Line.objects.filter(document_id=line.document_id).count()
                Line.objects.create(id=line.id, position=position, **values)
                return
            if current.revision > line.revision:
                logger.debug(
                    "line.upsert.stale",
                    extra={"line_id": line.id, "stored": current.revision, "incoming": line.revision},
                )
                return
            Line.objects.filter(pk=line.id).update(**values)

    def upsert_document(self, document: DocumentSnapshot) -> None:
        with transaction.atomic():
            stored = (
                Document.objects.select_for_update()
                .filter(pk=document.id)
                .values_list('status', flat=True)
                .first()
            )
            if stored == DocumentStatus.COMPLETED and document.status != DocumentStatus.COMPLETED:
                logger.warning(
                    "document.reopen.refused",
                    extra={"document_id": document.id, "status": str(document.status)},
                )
                raise PolicyViolation('DOCUMENT_COMPLETED', document_id=document.id)
            Document.objects.update_or_create(pk=document.id, defaults=_document_values(document))

    def atomic(self):
        return transaction.atomic()

    def bulk_put(self, document: DocumentSnapshot, lines: Iterable[LineSnapshot]) -> None:
        with transaction.atomic():
            self.upsert_document(document)
            for line in lines:
                self.upsert_line(line)


class OutboxSyncQueue:
    """SyncQueue that appends SyncAction rows for an external uploader."""

    def enqueue(self, action_type, payload: dict[str, Any]) -> None:
        action_type = SyncActionType(action_type)
        document_id = payload.get('document_id') or payload.get('id', '')
        SyncAction.objects.create(
            action_type=action_type,
            document_id=document_id,
            payload=payload,
        )
