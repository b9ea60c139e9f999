from decimal import Decimal

from django.conf import settings
from django.db import models

from backoffice.khata.models import ApprovalStatus


class ProductRequest(models.Model):
    """
    Envelope around an add, edit or delete of a Product. Created Pending by
    any user and moved to Approved or Rejected exactly once by an admin.
    """
    TYPE_ADD = 'add'
    TYPE_EDIT = 'edit'
    TYPE_DELETE = 'delete'
    REQUEST_TYPE_CHOICES = [
        (TYPE_ADD, 'Add'),
        (TYPE_EDIT, 'Edit'),
        (TYPE_DELETE, 'Delete'),
    ]

    request_id = models.CharField(max_length=30, unique=True)
    request_type = models.CharField(max_length=10, choices=REQUEST_TYPE_CHOICES)
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='requests')
    status = models.CharField(max_length=10, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING)
    is_long_set = models.BooleanField(default=False)
    admin_action = models.BooleanField(default=False, help_text="Submitted by an admin rather than a shopkeeper")
    requester = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='product_requests')
    decided_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='product_requests_decided')
    decided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.request_id} ({self.request_type}, {self.status})"

    class Meta:
        db_table = 'product_requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='product_req_status_5e1a7c_idx'),
        ]


class ProductRequestDetails(models.Model):
    """Proposed product values carried by an add or edit request"""
    request = models.OneToOneField(ProductRequest, on_delete=models.CASCADE, related_name='details')
    name = models.CharField(max_length=200, blank=True, null=True)
    sku = models.CharField(max_length=100, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    stock = models.PositiveIntegerField(null=True, blank=True)
    stock_adjustment = models.IntegerField(null=True, blank=True, help_text="Units added by an edit; used for artisan ledger entries")
    category = models.CharField(max_length=100, blank=True, null=True)
    material = models.CharField(max_length=100, blank=True, null=True)
    supplier = models.CharField(max_length=200, blank=True, null=True)
    image_url = models.URLField(max_length=500, blank=True, null=True)
    # [{'part_name', 'part_description', 'cost_price', 'karigar_id'}]
    long_set_parts = models.JSONField(null=True, blank=True)

    def __str__(self):
        return f"Details for {self.request.request_id}"

    class Meta:
        db_table = 'product_request_details'


class SalesRequest(models.Model):
    """Proposed sale awaiting an admin decision"""
    request_id = models.CharField(max_length=30, unique=True)
    customer = models.CharField(max_length=200)
    vyapari = models.ForeignKey('khata.Vyapari', on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_requests')
    total_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=10, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING)
    bill_type = models.CharField(max_length=10, blank=True, null=True, help_text="Bill raised when the request was approved")
    requester = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_requests')
    decided_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_requests_decided')
    decided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.request_id} - {self.customer} ({self.status})"

    class Meta:
        db_table = 'sales_requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='sales_reque_status_9b4d2f_idx'),
        ]


class SalesRequestItem(models.Model):
    """Line of a sales request with the product as it looked at submission"""
    sales_request = models.ForeignKey(SalesRequest, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_request_items')
    product_name = models.CharField(max_length=200)
    sku = models.CharField(max_length=100, blank=True)
    category = models.CharField(max_length=100, blank=True)
    material = models.CharField(max_length=100, blank=True)
    image_url = models.URLField(max_length=500, blank=True)
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=12, decimal_places=2)

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    @property
    def total(self):
        return self.price * self.quantity

    class Meta:
        db_table = 'sales_request_items'
        ordering = ['id']
