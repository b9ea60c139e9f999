from decimal import Decimal

from django.conf import settings
from django.db import models

BILL_TYPE_CHOICES = [
    ('GST', 'GST'),
    ('Non-GST', 'Non-GST'),
]


class Transaction(models.Model):
    """
    Completed sale. Written once when a sales request is approved and never
    modified; order_id equals the originating request id.
    """
    order_id = models.CharField(max_length=30, unique=True)
    customer = models.CharField(max_length=200)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    items = models.JSONField(default=list)
    bill_type = models.CharField(max_length=10, choices=BILL_TYPE_CHOICES, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=20, default='Completed')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_transactions')
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_sales_transactions')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.order_id} - {self.customer} ({self.total_amount})"

    class Meta:
        db_table = 'sales_transactions'
        ordering = ['-created_at']


class Bill(models.Model):
    """GST or Non-GST invoice document"""
    bill_number = models.CharField(max_length=30, unique=True)
    bill_type = models.CharField(max_length=10, choices=BILL_TYPE_CHOICES)
    date = models.DateField(db_index=True)
    date_of_supply = models.DateField(null=True, blank=True)
    time_of_supply = models.CharField(max_length=20, null=True, blank=True)
    customer_name = models.CharField(max_length=200)
    customer_address = models.TextField(blank=True, null=True)
    customer_state = models.CharField(max_length=100, blank=True, null=True)
    customer_gstin = models.CharField(max_length=20, blank=True, null=True)
    # {'lines': [...], '_meta': {...}}; lines are immutable once the bill exists
    items = models.JSONField(default=dict)
    taxable_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    cgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    sgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    igst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    hsn_codes = models.JSONField(default=dict)
    transport_mode = models.CharField(max_length=50, blank=True, null=True)
    vehicle_no = models.CharField(max_length=30, blank=True, null=True)
    place_of_supply = models.CharField(max_length=100, blank=True, null=True)
    is_taxable = models.BooleanField(default=True)
    source_reference = models.CharField(max_length=30, blank=True, null=True, db_index=True, help_text="Request id of the sale that produced this bill")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='bills_created')
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='bills_updated')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.bill_number} - {self.customer_name}"

    @property
    def meta(self):
        return (self.items or {}).get('_meta', {})

    @property
    def lines(self):
        return (self.items or {}).get('lines', [])

    class Meta:
        db_table = 'bills'
        ordering = ['-date', '-created_at']
