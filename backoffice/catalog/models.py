from decimal import Decimal

from django.conf import settings
from django.db import models


class Product(models.Model):
    """Product master; rows are created, edited and deleted only through approved requests"""
    sku = models.CharField(max_length=100, unique=True, db_index=True)
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    stock = models.PositiveIntegerField(default=0)
    category = models.CharField(max_length=100, blank=True, db_index=True)
    material = models.CharField(max_length=100, blank=True)
    image_url = models.URLField(max_length=500, blank=True)
    supplier = models.CharField(max_length=200, blank=True, null=True)
    low_stock_threshold = models.PositiveIntegerField(default=10)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='products_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def is_low_stock(self):
        return self.stock <= self.low_stock_threshold

    @property
    def is_long_set(self):
        return hasattr(self, 'long_set')

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']


class LongSetProduct(models.Model):
    """A product assembled from named parts"""
    product = models.OneToOneField(Product, on_delete=models.CASCADE, related_name='long_set')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Long set: {self.product.name}"

    class Meta:
        db_table = 'long_set_products'


class LongSetProductPart(models.Model):
    """
    One part of a long set. Parts carry no identity across edits: an approved
    edit deletes them all and recreates them in the submitted order.
    """
    long_set_product = models.ForeignKey(LongSetProduct, on_delete=models.CASCADE, related_name='parts')
    position = models.PositiveIntegerField(default=0)
    part_name = models.CharField(max_length=200)
    part_description = models.TextField(blank=True, null=True)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    karigar = models.ForeignKey('khata.Karigar', on_delete=models.SET_NULL, null=True, blank=True, related_name='long_set_parts')

    def __str__(self):
        return self.part_name

    class Meta:
        db_table = 'long_set_product_parts'
        ordering = ['position', 'id']
