"""
Enums for Floorman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class DocumentType(models.TextChoices):
    """Warehouse floor workflow a document belongs to."""
    RECEIVING = 'receiving', _('Приёмка')
    PLACEMENT = 'placement', _('Размещение')
    PICKING = 'picking', _('Подбор')
    SHIPMENT = 'shipment', _('Отгрузка')
    RETURN = 'return', _('Возврат')
    INVENTORY = 'inventory', _('Инвентаризация')


class DocumentStatus(models.TextChoices):
    """
    Document lifecycle status.

    NEW → IN_PROGRESS on first mutation, IN_PROGRESS → COMPLETED only
    through finish(). COMPLETED is terminal.
    """
    NEW = 'new', _('Новый')
    IN_PROGRESS = 'in_progress', _('В работе')
    COMPLETED = 'completed', _('Завершён')


class LineStatus(models.TextChoices):
    """Line status, always derived from (fact, plan, policy)."""
    PENDING = 'pending', _('Ожидает')
    PARTIAL = 'partial', _('Частично')
    COMPLETED = 'completed', _('Завершено')
    OVER = 'over', _('Излишек')


DONE_LINE_STATUSES = frozenset({LineStatus.COMPLETED, LineStatus.OVER})


class RouteStepStatus(models.TextChoices):
    """Picking route step status."""
    PENDING = 'pending', _('Ожидает')
    CURRENT = 'current', _('Текущая')
    COMPLETED = 'completed', _('Собрана')
    SKIPPED = 'skipped', _('Пропущена')


class DiscrepancyKind(models.TextChoices):
    """Plan-vs-fact classification of a line."""
    SHORTAGE = 'shortage', _('Недостача')
    SURPLUS = 'surplus', _('Излишек')
    OK = 'ok', _('Совпадает')


class SyncActionType(models.TextChoices):
    """Action kinds pushed to the offline sync queue."""
    UPDATE_LINE = 'update_line', _('Обновление строки')
    COMPLETE_DOC = 'complete_doc', _('Завершение документа')


class InventoryScope(models.TextChoices):
    """What an inventory document counts."""
    FULL = 'full', _('Полная')
    PARTIAL = 'partial', _('Частичная')
    CELL = 'cell', _('По ячейкам')


class ReturnKind(models.TextChoices):
    """Operation kind of a return document."""
    RETURN = 'return', _('Возврат')
    WRITEOFF = 'writeoff', _('Списание')
