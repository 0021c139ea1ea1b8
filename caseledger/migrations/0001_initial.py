"""
Initial migration for case ledger models.
"""

from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Item, Lot, UsageEvent, CountSnapshot, Order, OrderLine."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_code', models.CharField(max_length=50, unique=True, verbose_name='Item code')),
                ('description', models.CharField(blank=True, default='', max_length=255, verbose_name='Description')),
                ('barcode', models.CharField(blank=True, default='', max_length=64, verbose_name='Barcode')),
                ('unit', models.CharField(default='CS', help_text='CS, KG, LB, EA...', max_length=20, verbose_name='Unit')),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Unit price')),
                ('total_cases', models.PositiveIntegerField(default=0, verbose_name='Active cases')),
                ('total_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Active weight')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Item',
                'verbose_name_plural': 'Items',
                'ordering': ['item_code'],
            },
        ),
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('case_id', models.CharField(max_length=64, verbose_name='Case number')),
                ('weight', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Original weight')),
                ('remaining_quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Remaining')),
                ('received_date', models.DateField(db_index=True, help_text='Invoice date. Drives FIFO order and aging.', verbose_name='Received')),
                ('source_invoice', models.CharField(blank=True, default='', max_length=50, verbose_name='Invoice')),
                ('status', models.CharField(choices=[('IN_STOCK', 'In stock'), ('PARTIAL', 'Partially used'), ('USED', 'Used')], db_index=True, default='IN_STOCK', max_length=20, verbose_name='Status')),
                ('last_physical_count', models.JSONField(blank=True, null=True)),
                ('count_exclusions', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='caseledger.item', verbose_name='Item')),
            ],
            options={
                'verbose_name': 'Case',
                'verbose_name_plural': 'Cases',
                'ordering': ['received_date', 'id'],
            },
        ),
        migrations.CreateModel(
            name='UsageEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Date')),
                ('amount_used', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Amount used')),
                ('remaining_after', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Remaining after')),
                ('reason', models.CharField(max_length=255, verbose_name='Reason')),
                ('kind', models.CharField(choices=[('CONSUMPTION', 'Consumption'), ('PHYSICAL_COUNT_ADJUSTMENT', 'Physical count adjustment')], default='CONSUMPTION', max_length=32, verbose_name='Kind')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('recorded_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='usage_history', to='caseledger.lot', verbose_name='Case')),
            ],
            options={
                'verbose_name': 'Usage event',
                'verbose_name_plural': 'Usage events',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='CountSnapshot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('count_date', models.DateField(verbose_name='Count date')),
                ('cutoff_date', models.DateField(verbose_name='Cutoff date')),
                ('people_on_site', models.PositiveSmallIntegerField(blank=True, null=True, verbose_name='People on site')),
                ('notes', models.TextField(blank=True, default='')),
                ('cases_counted', models.PositiveIntegerField(default=0)),
                ('eligible_lot_count', models.PositiveIntegerField(default=0)),
                ('excluded_lot_count', models.PositiveIntegerField(default=0)),
                ('cases_marked_used', models.PositiveIntegerField(default=0)),
                ('total_cases', models.PositiveIntegerField(default=0)),
                ('total_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14)),
                ('performed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='count_history', to='caseledger.item', verbose_name='Item')),
            ],
            options={
                'verbose_name': 'Count snapshot',
                'verbose_name_plural': 'Count snapshots',
                'ordering': ['performed_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.CharField(max_length=50, unique=True, verbose_name='Order / invoice number')),
                ('order_date', models.DateField(blank=True, null=True, verbose_name='Order date')),
                ('total_value', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Invoice total')),
                ('is_credit_memo', models.BooleanField(default=False, verbose_name='Credit memo')),
                ('fulfillment_status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partial'), ('completed', 'Completed')], db_index=True, default='pending', max_length=20, verbose_name='Fulfillment')),
                ('fulfilled_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Fulfilled value')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='OrderLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_code', models.CharField(db_index=True, max_length=50, verbose_name='Item code')),
                ('description', models.CharField(blank=True, default='', max_length=255)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantity')),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Unit price')),
                ('line_total', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Line total')),
                ('fulfilled', models.BooleanField(db_index=True, default=False)),
                ('fulfilled_at', models.DateTimeField(blank=True, null=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='caseledger.order', verbose_name='Order')),
            ],
            options={
                'verbose_name': 'Order line',
                'verbose_name_plural': 'Order lines',
                'ordering': ['id'],
            },
        ),
        migrations.AddConstraint(
            model_name='lot',
            constraint=models.UniqueConstraint(fields=('item', 'case_id'), name='unique_case_per_item'),
        ),
        migrations.AddConstraint(
            model_name='lot',
            constraint=models.CheckConstraint(
                condition=models.Q(('remaining_quantity__gte', 0), ('remaining_quantity__lte', models.F('weight'))),
                name='lot_remaining_within_weight',
            ),
        ),
        migrations.AddIndex(
            model_name='lot',
            index=models.Index(fields=['item', 'status'], name='caseledger__item_id_5c1f0e_idx'),
        ),
        migrations.AddIndex(
            model_name='lot',
            index=models.Index(fields=['item', 'received_date'], name='caseledger__item_id_9a7d2b_idx'),
        ),
        migrations.AddIndex(
            model_name='orderline',
            index=models.Index(fields=['item_code', 'fulfilled'], name='caseledger__item_co_3e8b41_idx'),
        ),
    ]
