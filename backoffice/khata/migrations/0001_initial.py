# Generated manually for the initial khata schema

import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models

APPROVAL_CHOICES = [('Pending', 'Pending'), ('Approved', 'Approved'), ('Rejected', 'Rejected')]
PAYMENT_MODE_CHOICES = [('cash', 'Cash'), ('upi', 'UPI'), ('bank_transfer', 'Bank Transfer'), ('cheque', 'Cheque'), ('gold', 'Gold'), ('other', 'Other')]


def party_fields(model_name):
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('name', models.CharField(max_length=200)),
        ('phone', models.CharField(blank=True, max_length=20, null=True)),
        ('email', models.EmailField(blank=True, max_length=254, null=True)),
        ('address', models.TextField(blank=True, null=True)),
        ('status', models.CharField(choices=[('Active', 'Active'), ('Inactive', 'Inactive')], default='Active', max_length=10)),
        ('approval_status', models.CharField(choices=APPROVAL_CHOICES, default='Pending', max_length=10)),
        ('approved_at', models.DateTimeField(blank=True, null=True)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name=f'{model_name}_approved', to=settings.AUTH_USER_MODEL)),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name=f'{model_name}_created', to=settings.AUTH_USER_MODEL)),
    ]


def entry_fields(model_name):
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('approval_status', models.CharField(choices=APPROVAL_CHOICES, default='Pending', max_length=10)),
        ('approved_at', models.DateTimeField(blank=True, null=True)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name=f'{model_name}_approved', to=settings.AUTH_USER_MODEL)),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name=f'{model_name}_created', to=settings.AUTH_USER_MODEL)),
    ]


def transaction_fields(model_name, party):
    return entry_fields(model_name) + [
        ('transaction_id', models.CharField(max_length=30, unique=True)),
        ('description', models.TextField()),
        ('amount', models.DecimalField(decimal_places=2, max_digits=14)),
        ('items', models.JSONField(blank=True, null=True)),
        (party, models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to=f'khata.{party}')),
    ]


def payment_fields(model_name, party):
    return entry_fields(model_name) + [
        ('payment_id', models.CharField(max_length=30, unique=True)),
        ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
        ('payment_mode', models.CharField(choices=PAYMENT_MODE_CHOICES, max_length=20)),
        ('reference_number', models.CharField(blank=True, max_length=100, null=True)),
        ('notes', models.TextField(blank=True, null=True)),
        (party, models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to=f'khata.{party}')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Vyapari',
            fields=party_fields('vyapari'),
            options={
                'db_table': 'vyaparis',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Karigar',
            fields=party_fields('karigar') + [
                ('specialization', models.CharField(blank=True, max_length=200, null=True)),
            ],
            options={
                'db_table': 'karigars',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='VyapariTransaction',
            fields=transaction_fields('vyaparitransaction', 'vyapari'),
            options={
                'db_table': 'vyapari_transactions',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='KarigarTransaction',
            fields=transaction_fields('karigartransaction', 'karigar'),
            options={
                'db_table': 'karigar_transactions',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='VyapariPayment',
            fields=payment_fields('vyaparipayment', 'vyapari'),
            options={
                'db_table': 'vyapari_payments',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='KarigarPayment',
            fields=payment_fields('karigarpayment', 'karigar'),
            options={
                'db_table': 'karigar_payments',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
    ]
