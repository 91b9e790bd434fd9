"""
Management command to recompute cached document counters from lines.

Usage:
    python manage.py recount_documents
    python manage.py recount_documents --dry-run
"""

from django.core.management.base import BaseCommand
from django.db.models import Count, Q

from floorman.models import DONE_LINE_STATUSES, Document


class Command(BaseCommand):
    """Recount total/completed lines for every cached document."""

    help = 'Пересчитывает счётчики строк документов'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Показать расхождения без записи'
        )

    def handle(self, *args, **options):
        documents = Document.objects.annotate(
            line_count=Count('lines'),
            done_count=Count('lines', filter=Q(lines__status__in=DONE_LINE_STATUSES)),
        )

        drifted = [
            doc for doc in documents
            if doc.total_lines != doc.line_count or doc.completed_lines != doc.done_count
        ]

        if options['dry_run']:
            for doc in drifted:
                self.stdout.write(
                    f'{doc.id}: {doc.completed_lines}/{doc.total_lines} -> {doc.done_count}/{doc.line_count}'
                )
            self.stdout.write(f'{len(drifted)} документ(ов) будет исправлено')
            return

        for doc in drifted:
            Document.objects.filter(pk=doc.pk).update(
                total_lines=doc.line_count,
                completed_lines=doc.done_count,
            )
        self.stdout.write(
            self.style.SUCCESS(f'{len(drifted)} документ(ов) исправлено')
        )
