"""
Initial migration for Floorman models.
"""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Floorman models: Document, Line, SyncAction."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Document',
            fields=[
                ('id', models.CharField(max_length=128, primary_key=True, serialize=False, verbose_name='ID')),
                ('doc_type', models.CharField(choices=[('receiving', 'Приёмка'), ('placement', 'Размещение'), ('picking', 'Подбор'), ('shipment', 'Отгрузка'), ('return', 'Возврат'), ('inventory', 'Инвентаризация')], db_index=True, max_length=20, verbose_name='Тип')),
                ('status', models.CharField(choices=[('new', 'Новый'), ('in_progress', 'В работе'), ('completed', 'Завершён')], db_index=True, default='new', max_length=20, verbose_name='Статус')),
                ('number', models.CharField(blank=True, default='', max_length=64, verbose_name='Номер')),
                ('partner_name', models.CharField(blank=True, default='', max_length=255, verbose_name='Контрагент')),
                ('total_lines', models.PositiveIntegerField(default=0, verbose_name='Строк всего')),
                ('completed_lines', models.PositiveIntegerField(default=0, verbose_name='Строк выполнено')),
                ('source_document_id', models.CharField(blank=True, default='', help_text='Например, приёмка для размещения', max_length=128, verbose_name='Документ-основание')),
                ('fields', models.JSONField(blank=True, default=dict, help_text='Область инвентаризации, перевозчик/ТТН, вид возврата', verbose_name='Поля типа')),
                ('discrepancies', models.JSONField(blank=True, default=list, help_text='Снимки расхождений, дописываются при завершении', verbose_name='Расхождения')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Создан')),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Изменён')),
            ],
            options={
                'verbose_name': 'Документ',
                'verbose_name_plural': 'Документы',
                'ordering': ['-updated_at'],
                'indexes': [models.Index(fields=['doc_type', 'status'], name='floorman_do_doc_typ_5c1f0a_idx')],
            },
        ),
        migrations.CreateModel(
            name='Line',
            fields=[
                ('id', models.CharField(max_length=128, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=64, verbose_name='Товар')),
                ('product_name', models.CharField(blank=True, default='', max_length=255, verbose_name='Наименование')),
                ('product_sku', models.CharField(blank=True, db_index=True, default='', max_length=64, verbose_name='Артикул')),
                ('barcode', models.CharField(blank=True, db_index=True, default='', max_length=64, verbose_name='Штрихкод')),
                ('quantity_plan', models.PositiveIntegerField(default=0, verbose_name='План')),
                ('quantity_fact', models.PositiveIntegerField(default=0, verbose_name='Факт')),
                ('status', models.CharField(choices=[('pending', 'Ожидает'), ('partial', 'Частично'), ('completed', 'Завершено'), ('over', 'Излишек')], default='pending', max_length=20, verbose_name='Статус')),
                ('cell_id', models.CharField(blank=True, default='', max_length=32, verbose_name='Ячейка')),
                ('scan_count', models.PositiveIntegerField(default=0, verbose_name='Сканирований')),
                ('last_scan_at', models.DateTimeField(blank=True, null=True, verbose_name='Последнее сканирование')),
                ('revision', models.PositiveIntegerField(default=0, verbose_name='Ревизия')),
                ('position', models.PositiveIntegerField(default=0, verbose_name='Порядок')),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='floorman.document', verbose_name='Документ')),
            ],
            options={
                'verbose_name': 'Строка документа',
                'verbose_name_plural': 'Строки документа',
                'ordering': ['document', 'position', 'id'],
                'indexes': [models.Index(fields=['document', 'barcode'], name='floorman_li_documen_8e2b4d_idx')],
            },
        ),
        migrations.CreateModel(
            name='SyncAction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action_type', models.CharField(choices=[('update_line', 'Обновление строки'), ('complete_doc', 'Завершение документа')], max_length=20, verbose_name='Действие')),
                ('document_id', models.CharField(db_index=True, max_length=128, verbose_name='Документ')),
                ('payload', models.JSONField(default=dict, verbose_name='Данные')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Создано')),
                ('sent_at', models.DateTimeField(blank=True, null=True, verbose_name='Отправлено')),
            ],
            options={
                'verbose_name': 'Действие синхронизации',
                'verbose_name_plural': 'Очередь синхронизации',
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
