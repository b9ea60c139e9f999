from django.contrib import admin
from .models import Product, LongSetProduct, LongSetProductPart


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['sku', 'name', 'category', 'material', 'price', 'stock', 'low_stock_threshold', 'created_at']
    list_filter = ['category', 'material', 'created_at']
    search_fields = ['sku', 'name', 'description', 'supplier']
    readonly_fields = ['created_at', 'updated_at']


class LongSetProductPartInline(admin.TabularInline):
    model = LongSetProductPart
    extra = 0


@admin.register(LongSetProduct)
class LongSetProductAdmin(admin.ModelAdmin):
    list_display = ['product', 'created_at']
    search_fields = ['product__name', 'product__sku']
    inlines = [LongSetProductPartInline]
