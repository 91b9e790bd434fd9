"""
Document lifecycle — load, create, commit and finish.

Sources are tried in order: local cache, then each configured plan source
(remote first, demo last). A document that no source can provide is a
DataUnavailable error; nothing partially populated is ever returned.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Sequence

from django.utils import timezone

from floorman.exceptions import DataUnavailable, ScanValidationError, SourceError
from floorman.models.enums import (
    DocumentStatus,
    DocumentType,
    InventoryScope,
    LineStatus,
    ReturnKind,
    SyncActionType,
)
from floorman.policies import get_policy
from floorman.protocols.persistence import DocumentStore
from floorman.protocols.snapshots import DiscrepancyRecord, DocumentSnapshot, LineSnapshot
from floorman.protocols.source import PlanResult, PlanSource
from floorman.protocols.sync import SyncQueue
from floorman.protocols.telemetry import ScanObserver
from floorman.services.discrepancy import DiscrepancyReport, report
from floorman.services.reconciler import count_completed, derive_status
from floorman.services.stats import can_complete
from floorman.signals import document_completed, follow_on_requested

logger = logging.getLogger('floorman')


@dataclass(frozen=True)
class FollowOnRequest:
    """Dependent document asked for by a completion."""

    source_document_id: str
    doc_type: DocumentType
    lines: tuple[LineSnapshot, ...]


@dataclass(frozen=True)
class FinishResult:
    """
    Outcome of finish().

    needs_confirmation=True means nothing was written: the caller shows the
    discrepancies and calls finish(force=True) if the operator agrees.
    warnings are the operator notes from stats.can_complete().
    """

    document: DocumentSnapshot
    report: DiscrepancyReport
    needs_confirmation: bool = False
    follow_on_request: FollowOnRequest | None = None
    follow_on: DocumentSnapshot | None = None
    duplicate: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def discrepancies(self) -> tuple[DiscrepancyRecord, ...]:
        return self.report.records


def _new_id() -> str:
    return uuid.uuid4().hex


def recount(document: DocumentSnapshot, lines: Sequence[LineSnapshot]) -> DocumentSnapshot:
    """Document with counters recomputed from its lines."""
    return replace(document, total_lines=len(lines), completed_lines=count_completed(lines))


class DocumentLifecycle:
    """
    Load/create/finish transitions around the persistence and sync contracts.

    Collaborators are injected; see floorman.service.Floor for the wiring
    from settings.
    """

    def __init__(self, store: DocumentStore, sync_queue: SyncQueue,
                 sources: Iterable[PlanSource] = (), observer: ScanObserver | None = None,
                 *, create_follow_on: bool = True,
                 id_factory: Callable[[], str] = _new_id,
                 now: Callable = timezone.now):
        self.store = store
        self.sync_queue = sync_queue
        self.sources = list(sources)
        self.observer = observer
        self.create_follow_on = create_follow_on
        self._id_factory = id_factory
        self._now = now

    def _emit(self, name: str, **data) -> None:
        if self.observer is not None:
            self.observer.on_event(name, **data)

    # ══════════════════════════════════════════════════════════════
    # LOAD
    # ══════════════════════════════════════════════════════════════

    def load(self, doc_type, doc_id: str) -> tuple[DocumentSnapshot, list[LineSnapshot]]:
        """
        Normalized document and lines.

        Raises:
            DataUnavailable('DOCUMENT_UNAVAILABLE'): cache and every source
                came back empty or failed
        """
        doc_type = DocumentType(doc_type)
        document = self.store.get(doc_type, doc_id)
        if document is not None:
            lines = self.store.get_lines(doc_type, doc_id)
            counted = recount(document, lines)
            if counted != document:
                # counters drifted in the cache
                self.store.upsert_document(counted)
                logger.warning(
                    "document.load.recount",
                    extra={"document_id": doc_id, "completed_lines": counted.completed_lines},
                )
            return counted, lines

        tried = []
        for source in self.sources:
            tried.append(source.name)
            try:
                plan = source.fetch_plan(doc_type, doc_id)
            except SourceError as exc:
                logger.warning(
                    "document.load.fallback",
                    extra={"document_id": doc_id, "source": source.name, "error": exc.code},
                )
                continue
            if plan is None:
                continue
            document, lines = self.hydrate(plan)
            self.store.bulk_put(document, lines)
            logger.info(
                "document.load.hydrated",
                extra={"document_id": doc_id, "source": source.name, "lines": len(lines)},
            )
            return document, lines

        raise DataUnavailable(
            'DOCUMENT_UNAVAILABLE',
            doc_type=doc_type.value,
            document_id=doc_id,
            tried=tried,
        )

    def hydrate(self, plan: PlanResult) -> tuple[DocumentSnapshot, list[LineSnapshot]]:
        """Declared items become lines; counted items seed their fact."""
        counted: dict[str, int] = {}
        for item in plan.counted:
            counted[item.product_id] = counted.get(item.product_id, 0) + item.quantity

        lines = []
        for item in plan.declared:
            fact = max(0, counted.get(item.product_id, 0))
            lines.append(LineSnapshot(
                id=item.uid,
                document_id=plan.document_id,
                product_id=item.product_id,
                product_name=item.product_name or item.product_id,
                product_sku=item.sku or item.product_id,
                barcode=item.barcode or item.product_id,
                quantity_plan=item.quantity,
                quantity_fact=fact,
                status=derive_status(fact, item.quantity),
                cell_id=item.cell_id.upper() if item.cell_id else None,
            ))

        now = self._now()
        document = recount(DocumentSnapshot(
            id=plan.document_id,
            doc_type=DocumentType(plan.doc_type),
            status=DocumentStatus(plan.status),
            number=plan.number,
            partner_name=plan.partner_name,
            created_at=plan.created_at or now,
            updated_at=plan.updated_at or now,
            fields=dict(plan.fields),
        ), lines)
        return document, lines

    # ══════════════════════════════════════════════════════════════
    # CREATE
    # ══════════════════════════════════════════════════════════════

    def create(self, doc_type, *, number: str = '', partner_name: str = '',
               source_document_id: str = '', doc_id: str | None = None,
               **scope) -> DocumentSnapshot:
        """
        Operator-initiated document with empty counters (inventory, return).

        Inventory scope: scope=full|partial|cell, zones=[...], cells=[...].
        Return: operation=return|writeoff, reason=...
        """
        doc_type = DocumentType(doc_type)
        fields = self._scope_fields(doc_type, scope)
        now = self._now()
        document = DocumentSnapshot(
            id=doc_id or self._id_factory(),
            doc_type=doc_type,
            status=DocumentStatus.NEW,
            number=number,
            partner_name=partner_name,
            source_document_id=source_document_id,
            created_at=now,
            updated_at=now,
            fields=fields,
        )
        self.store.upsert_document(document)
        logger.info(
            "document.create",
            extra={"document_id": document.id, "doc_type": doc_type.value},
        )
        self._emit("document.created", document_id=document.id, doc_type=doc_type.value)
        return document

    @staticmethod
    def _scope_fields(doc_type: DocumentType, scope: dict) -> dict:
        fields = dict(scope)
        try:
            if doc_type == DocumentType.INVENTORY:
                fields['scope'] = InventoryScope(fields.get('scope', InventoryScope.FULL)).value
                fields['zones'] = [z.upper() for z in fields.get('zones', [])]
                fields['cells'] = [c.upper() for c in fields.get('cells', [])]
            elif doc_type == DocumentType.RETURN:
                fields['operation'] = ReturnKind(fields.get('operation', ReturnKind.RETURN)).value
        except ValueError as exc:
            raise ScanValidationError('INVALID_SCOPE', str(exc), doc_type=doc_type.value) from exc
        return fields

    # ══════════════════════════════════════════════════════════════
    # COMMIT
    # ══════════════════════════════════════════════════════════════

    def commit_line(self, document: DocumentSnapshot, lines: Sequence[LineSnapshot],
                    line: LineSnapshot) -> DocumentSnapshot:
        """
        Persist one mutated line and the document counters after it.

        lines must already contain the new version of line.
        """
        status = document.status
        if status == DocumentStatus.NEW:
            status = DocumentStatus.IN_PROGRESS
        document = replace(recount(document, lines), status=status, updated_at=self._now())

        with self.store.atomic():
            self.store.upsert_line(line)
            self.store.upsert_document(document)
            self.sync_queue.enqueue(SyncActionType.UPDATE_LINE, line.to_payload())
        logger.info(
            "scan.line",
            extra={
                "document_id": document.id,
                "line_id": line.id,
                "fact": line.quantity_fact,
                "plan": line.quantity_plan,
                "status": str(line.status),
            },
        )
        return document

    def attach_discrepancies(self, document: DocumentSnapshot,
                             records: Iterable[DiscrepancyRecord]) -> DocumentSnapshot:
        """
        Append a discrepancy snapshot; allowed after completion too.

        Only the discrepancy list changes: status, counters and lines are
        left as they are.
        """
        records = tuple(records)
        if not records:
            return document
        document = replace(document, discrepancies=document.discrepancies + records)
        self.store.upsert_document(document)
        logger.info(
            "document.discrepancies.attached",
            extra={"document_id": document.id, "records": len(records)},
        )
        return document

    # ══════════════════════════════════════════════════════════════
    # FINISH
    # ══════════════════════════════════════════════════════════════

    def finish(self, document: DocumentSnapshot, lines: Sequence[LineSnapshot],
               force: bool = False, extra: Iterable[DiscrepancyRecord] = ()) -> FinishResult:
        """
        Complete a document.

        Without force, any discrepancy returns needs_confirmation=True and
        nothing changes. A second finish of a completed document is a
        duplicate and returns the stored result unchanged.
        """
        if document.is_completed:
            logger.debug("document.finish.duplicate", extra={"document_id": document.id})
            return FinishResult(
                document=document,
                report=DiscrepancyReport(records=document.discrepancies),
                duplicate=True,
            )

        result = report(lines, extra)
        _, warnings = can_complete(document.doc_type, lines)
        if result.has_discrepancy and not force:
            self._emit("document.finish.blocked", document_id=document.id, discrepancies=len(result.records))
            return FinishResult(
                document=document,
                report=result,
                needs_confirmation=True,
                warnings=tuple(warnings),
            )

        completed = replace(
            recount(document, lines),
            status=DocumentStatus.COMPLETED,
            updated_at=self._now(),
            discrepancies=document.discrepancies + result.records,
        )
        request = self.derive_follow_on(completed, lines)
        follow_on = None
        with self.store.atomic():
            self.store.upsert_document(completed)
            self.sync_queue.enqueue(SyncActionType.COMPLETE_DOC, completed.to_payload())
            if request is not None and self.create_follow_on:
                follow_on = self.create_from(request)
        logger.info(
            "document.finish",
            extra={
                "document_id": completed.id,
                "doc_type": completed.doc_type.value,
                "completed_lines": completed.completed_lines,
                "total_lines": completed.total_lines,
                "forced": bool(force and result.has_discrepancy),
            },
        )
        self._emit("document.completed", document_id=completed.id, discrepancies=len(result.records))
        document_completed.send(sender=type(self), document=completed, report=result)
        if request is not None:
            follow_on_requested.send(sender=type(self), request=request, document=follow_on)

        return FinishResult(
            document=completed,
            report=result,
            follow_on_request=request,
            follow_on=follow_on,
            warnings=tuple(warnings),
        )

    # ══════════════════════════════════════════════════════════════
    # FOLLOW-ON
    # ══════════════════════════════════════════════════════════════

    def derive_follow_on(self, document: DocumentSnapshot,
                         lines: Sequence[LineSnapshot]) -> FollowOnRequest | None:
        """
        Dependent document for a completed one.

        Receiving → placement: the received (fact) quantity becomes the
        plan, fact starts at 0, cells are chosen during placement. Lines
        with nothing received are left out.
        """
        target = get_policy(document.doc_type).follow_on
        if target is None:
            return None
        follow_id = f"{document.id}-{DocumentType(target).value}"
        derived = tuple(
            LineSnapshot(
                id=f"{follow_id}-{index}",
                document_id=follow_id,
                product_id=line.product_id,
                product_name=line.product_name,
                product_sku=line.product_sku,
                barcode=line.barcode,
                quantity_plan=line.quantity_fact,
                quantity_fact=0,
                status=LineStatus.PENDING,
            )
            for index, line in enumerate(lines, start=1)
            if line.quantity_fact > 0
        )
        return FollowOnRequest(source_document_id=document.id, doc_type=DocumentType(target), lines=derived)

    def create_from(self, request: FollowOnRequest) -> DocumentSnapshot:
        """Create and cache the document described by a follow-on request."""
        follow_id = f"{request.source_document_id}-{request.doc_type.value}"
        existing = self.store.get(request.doc_type, follow_id)
        if existing is not None:
            return existing
        now = self._now()
        document = recount(DocumentSnapshot(
            id=follow_id,
            doc_type=request.doc_type,
            status=DocumentStatus.NEW,
            source_document_id=request.source_document_id,
            created_at=now,
            updated_at=now,
        ), request.lines)
        self.store.bulk_put(document, request.lines)
        logger.info(
            "document.follow_on",
            extra={"document_id": follow_id, "source_document_id": request.source_document_id},
        )
        return document
