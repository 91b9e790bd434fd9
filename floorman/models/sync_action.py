"""
SyncAction model — outbox of committed mutations awaiting upload.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from floorman.models.enums import SyncActionType


class SyncActionQuerySet(models.QuerySet):

    def unsent(self):
        return self.filter(sent_at__isnull=True)


class SyncAction(models.Model):
    """
    One queued action for the backend.

    Rows are only appended here; whoever uploads them marks sent_at.
    Retry, backoff and ordering belong to that uploader.
    """

    action_type = models.CharField(
        max_length=20,
        choices=SyncActionType.choices,
        verbose_name=_('Действие'),
    )
    document_id = models.CharField(max_length=128, db_index=True, verbose_name=_('Документ'))
    payload = models.JSONField(default=dict, verbose_name=_('Данные'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Создано'))
    sent_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Отправлено'))

    objects = SyncActionQuerySet.as_manager()

    class Meta:
        verbose_name = _('Действие синхронизации')
        verbose_name_plural = _('Очередь синхронизации')
        ordering = ['created_at', 'id']

    def __str__(self) -> str:
        state = 'sent' if self.sent_at else 'queued'
        return f"{self.action_type} {self.document_id} [{state}]"
