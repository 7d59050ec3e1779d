"""
Initial migration for Stockwatch models.
"""

from decimal import Decimal
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Stockwatch models: Product, StockTransaction, Anomaly."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('category', models.CharField(blank=True, default='', max_length=100, verbose_name='Category')),
                ('quantity', models.PositiveIntegerField(default=0, help_text='Changed only through stock transactions.', verbose_name='Quantity')),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Price')),
                ('minimum_stock', models.PositiveIntegerField(default=10, help_text='Low stock is flagged at or below this quantity.', verbose_name='Minimum stock')),
                ('expiry_date', models.DateField(blank=True, null=True, verbose_name='Expiry date')),
                ('is_fixture', models.BooleanField(db_index=True, default=False, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['name'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='stockwatch_product_quantity_non_negative'),
                    models.CheckConstraint(condition=models.Q(('price__gte', 0)), name='stockwatch_product_price_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('sale', 'Sale'), ('restock', 'Restock'), ('purchase', 'Purchase'), ('adjustment', 'Adjustment'), ('expiry', 'Expiry'), ('damage', 'Damage')], max_length=20, verbose_name='Type')),
                ('quantity', models.IntegerField(help_text='Positive = stock in, negative = stock out', verbose_name='Change')),
                ('previous_quantity', models.PositiveIntegerField(verbose_name='Previous quantity')),
                ('new_quantity', models.PositiveIntegerField(verbose_name='New quantity')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Reason')),
                ('actor', models.CharField(blank=True, default='', help_text='Who performed the change. Empty = unattributed.', max_length=150, verbose_name='Actor')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Date/time')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='stockwatch.product', verbose_name='Product')),
            ],
            options={
                'verbose_name': 'Transaction',
                'verbose_name_plural': 'Transactions',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['product', 'created_at'], name='stockwatch_tx_product_created'),
                    models.Index(fields=['type'], name='stockwatch_tx_type'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Anomaly',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('low_stock', 'Low stock'), ('theft', 'Theft'), ('shrinkage', 'Shrinkage'), ('unauthorized_access', 'Unauthorized access'), ('unusual_sales', 'Unusual sales'), ('expiry', 'Expiry'), ('other', 'Other')], max_length=30, verbose_name='Type')),
                ('severity', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('critical', 'Critical')], default='medium', max_length=10, verbose_name='Severity')),
                ('ai_confidence', models.FloatField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0.0), django.core.validators.MaxValueValidator(1.0)], verbose_name='AI confidence')),
                ('description', models.TextField(blank=True, default='', verbose_name='Description')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('detection_pass', models.CharField(blank=True, choices=[('general', 'General anomaly scan'), ('theft', 'Theft-focused scan')], default='', max_length=20, verbose_name='Detected by')),
                ('resolved', models.BooleanField(db_index=True, default=False, verbose_name='Resolved')),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolved at')),
                ('acknowledged_at', models.DateTimeField(blank=True, null=True, verbose_name='Acknowledged at')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Detected at')),
                ('product', models.ForeignKey(blank=True, help_text='Empty = not tied to a single product', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='anomalies', to='stockwatch.product', verbose_name='Product')),
            ],
            options={
                'verbose_name': 'Anomaly',
                'verbose_name_plural': 'Anomalies',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['product', 'type', 'resolved'], name='stockwatch_anomaly_triage'),
                    models.Index(fields=['severity'], name='stockwatch_anomaly_severity'),
                ],
            },
        ),
    ]
