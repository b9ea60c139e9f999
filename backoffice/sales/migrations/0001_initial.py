# Generated manually for the initial sales schema

import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.CharField(max_length=30, unique=True)),
                ('customer', models.CharField(max_length=200)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('items', models.JSONField(default=list)),
                ('bill_type', models.CharField(blank=True, choices=[('GST', 'GST'), ('Non-GST', 'Non-GST')], db_index=True, max_length=10, null=True)),
                ('status', models.CharField(default='Completed', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_sales_transactions', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sales_transactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'sales_transactions',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Bill',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('bill_number', models.CharField(max_length=30, unique=True)),
                ('bill_type', models.CharField(choices=[('GST', 'GST'), ('Non-GST', 'Non-GST')], max_length=10)),
                ('date', models.DateField(db_index=True)),
                ('date_of_supply', models.DateField(blank=True, null=True)),
                ('time_of_supply', models.CharField(blank=True, max_length=20, null=True)),
                ('customer_name', models.CharField(max_length=200)),
                ('customer_address', models.TextField(blank=True, null=True)),
                ('customer_state', models.CharField(blank=True, max_length=100, null=True)),
                ('customer_gstin', models.CharField(blank=True, max_length=20, null=True)),
                ('items', models.JSONField(default=dict)),
                ('taxable_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('cgst', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('sgst', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('igst', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('hsn_codes', models.JSONField(default=dict)),
                ('transport_mode', models.CharField(blank=True, max_length=50, null=True)),
                ('vehicle_no', models.CharField(blank=True, max_length=30, null=True)),
                ('place_of_supply', models.CharField(blank=True, max_length=100, null=True)),
                ('is_taxable', models.BooleanField(default=True)),
                ('source_reference', models.CharField(blank=True, db_index=True, help_text='Request id of the sale that produced this bill', max_length=30, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bills_created', to=settings.AUTH_USER_MODEL)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bills_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bills',
                'ordering': ['-date', '-created_at'],
            },
        ),
    ]
