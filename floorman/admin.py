"""
Floorman Admin — read-only views of the local cache for debugging.

- Document: read-only with lines inline and a "recount" action
- Line: read-only
- SyncAction: read-only outbox with "mark as sent" action
"""

import logging

from django.contrib import admin
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from floorman.models import Document, Line, SyncAction

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Cache rows only change through the engine."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# DOCUMENT ADMIN
# =========================================================================

class LineInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = Line
    fields = ['product_name', 'barcode', 'cell_id', 'quantity_plan', 'quantity_fact', 'status']
    readonly_fields = fields
    extra = 0


@admin.register(Document)
class DocumentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Document admin — read-only."""

    list_display = ['id', 'doc_type', 'number', 'status', 'progress_display', 'updated_at']
    list_filter = ['doc_type', 'status']
    search_fields = ['id', 'number', 'partner_name']
    readonly_fields = ['id', 'doc_type', 'status', 'number', 'partner_name',
                       'total_lines', 'completed_lines', 'source_document_id',
                       'fields', 'discrepancies', 'created_at', 'updated_at']
    inlines = [LineInline]
    actions = ['recount_documents']

    @admin.display(description=_('Выполнено'))
    def progress_display(self, obj):
        return f"{obj.completed_lines}/{obj.total_lines}"

    @admin.action(description=_('Пересчитать счётчики строк'))
    def recount_documents(self, request, queryset):
        from floorman.adapters.orm import document_to_snapshot, line_to_snapshot
        from floorman.services.lifecycle import recount

        fixed = 0
        for row in queryset:
            document = document_to_snapshot(row)
            counted = recount(document, [line_to_snapshot(line) for line in row.lines.all()])
            if counted != document:
                Document.objects.filter(pk=row.pk).update(
                    total_lines=counted.total_lines,
                    completed_lines=counted.completed_lines,
                )
                fixed += 1
        logger.info("admin.recount", extra={"fixed": fixed})
        self.message_user(request, _('Исправлено документов: {count}.').format(count=fixed))


@admin.register(Line)
class LineAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Line admin — read-only."""

    list_display = ['id', 'document', 'product_name', 'cell_id',
                    'quantity_plan', 'quantity_fact', 'status', 'last_scan_at']
    list_filter = ['status', 'document__doc_type']
    search_fields = ['product_name', 'product_sku', 'barcode', 'document__id']


# =========================================================================
# SYNC OUTBOX ADMIN
# =========================================================================

@admin.register(SyncAction)
class SyncActionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Outbox admin — read-only with "mark as sent" action."""

    list_display = ['id', 'action_type', 'document_id', 'created_at', 'sent_at']
    list_filter = ['action_type', 'sent_at']
    search_fields = ['document_id']
    actions = ['mark_sent']

    @admin.action(description=_('Отметить как отправленные'))
    def mark_sent(self, request, queryset):
        count = queryset.unsent().update(sent_at=timezone.now())
        self.message_user(request, _('Отмечено: {count}.').format(count=count))
