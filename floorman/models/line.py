"""
Line model — one product row of a cached document.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from floorman.models.enums import DONE_LINE_STATUSES, LineStatus


class Line(models.Model):
    """
    Plan/fact row of a document.

    status is a pure function of (quantity_fact, quantity_plan, policy) and
    is written only together with the quantities it was derived from.
    revision grows by one per committed mutation; stale writes are ignored.
    """

    id = models.CharField(primary_key=True, max_length=128, verbose_name=_('ID'))
    document = models.ForeignKey(
        'floorman.Document',
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Документ'),
    )

    product_id = models.CharField(max_length=64, verbose_name=_('Товар'))
    product_name = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Наименование'))
    product_sku = models.CharField(max_length=64, blank=True, default='', db_index=True, verbose_name=_('Артикул'))
    barcode = models.CharField(max_length=64, blank=True, default='', db_index=True, verbose_name=_('Штрихкод'))

    quantity_plan = models.PositiveIntegerField(default=0, verbose_name=_('План'))
    quantity_fact = models.PositiveIntegerField(default=0, verbose_name=_('Факт'))
    status = models.CharField(
        max_length=20,
        choices=LineStatus.choices,
        default=LineStatus.PENDING,
        verbose_name=_('Статус'),
    )

    cell_id = models.CharField(max_length=32, blank=True, default='', verbose_name=_('Ячейка'))
    scan_count = models.PositiveIntegerField(default=0, verbose_name=_('Сканирований'))
    last_scan_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Последнее сканирование'))
    revision = models.PositiveIntegerField(default=0, verbose_name=_('Ревизия'))
    position = models.PositiveIntegerField(default=0, verbose_name=_('Порядок'))

    class Meta:
        verbose_name = _('Строка документа')
        verbose_name_plural = _('Строки документа')
        ordering = ['document', 'position', 'id']
        indexes = [
            models.Index(fields=['document', 'barcode'], name='floorman_li_documen_8e2b4d_idx'),
        ]

    @property
    def is_done(self) -> bool:
        return self.status in DONE_LINE_STATUSES

    def __str__(self) -> str:
        return f"{self.product_name or self.product_sku}: {self.quantity_fact}/{self.quantity_plan}"
