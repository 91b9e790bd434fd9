"""
Document model — local cache of a warehouse floor document.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from floorman.models.enums import DocumentStatus, DocumentType


class DocumentQuerySet(models.QuerySet):
    """QuerySet helpers for Document queries."""

    def of_type(self, doc_type):
        return self.filter(doc_type=doc_type)

    def open(self):
        """Documents that still accept scans."""
        return self.exclude(status=DocumentStatus.COMPLETED)


class Document(models.Model):
    """
    Header of a receiving/placement/picking/shipment/return/inventory document.

    Counters are a cache: completed_lines is recomputed from the lines after
    every committed mutation and never edited by hand.
    """

    id = models.CharField(primary_key=True, max_length=128, verbose_name=_('ID'))
    doc_type = models.CharField(
        max_length=20,
        choices=DocumentType.choices,
        db_index=True,
        verbose_name=_('Тип'),
    )
    status = models.CharField(
        max_length=20,
        choices=DocumentStatus.choices,
        default=DocumentStatus.NEW,
        db_index=True,
        verbose_name=_('Статус'),
    )
    number = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Номер'))
    partner_name = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Контрагент'))

    total_lines = models.PositiveIntegerField(default=0, verbose_name=_('Строк всего'))
    completed_lines = models.PositiveIntegerField(default=0, verbose_name=_('Строк выполнено'))

    source_document_id = models.CharField(
        max_length=128,
        blank=True,
        default='',
        verbose_name=_('Документ-основание'),
        help_text=_('Например, приёмка для размещения'),
    )
    fields = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Поля типа'),
        help_text=_('Область инвентаризации, перевозчик/ТТН, вид возврата'),
    )
    discrepancies = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_('Расхождения'),
        help_text=_('Снимки расхождений, дописываются при завершении'),
    )

    created_at = models.DateTimeField(default=timezone.now, verbose_name=_('Создан'))
    updated_at = models.DateTimeField(default=timezone.now, verbose_name=_('Изменён'))

    objects = DocumentQuerySet.as_manager()

    class Meta:
        verbose_name = _('Документ')
        verbose_name_plural = _('Документы')
        ordering = ['-updated_at']
        indexes = [
            models.Index(fields=['doc_type', 'status'], name='floorman_do_doc_typ_5c1f0a_idx'),
        ]

    @property
    def is_completed(self) -> bool:
        return self.status == DocumentStatus.COMPLETED

    def __str__(self) -> str:
        label = self.number or self.id
        return f"{self.get_doc_type_display()} {label} ({self.completed_lines}/{self.total_lines})"
