from django.contrib import admin
from .models import ProductRequest, ProductRequestDetails, SalesRequest, SalesRequestItem


class ProductRequestDetailsInline(admin.StackedInline):
    model = ProductRequestDetails
    extra = 0


@admin.register(ProductRequest)
class ProductRequestAdmin(admin.ModelAdmin):
    list_display = ['request_id', 'request_type', 'product', 'status', 'is_long_set', 'admin_action', 'requester', 'created_at']
    list_filter = ['status', 'request_type', 'is_long_set', 'admin_action']
    search_fields = ['request_id', 'details__name', 'details__sku']
    readonly_fields = ['request_id', 'decided_by', 'decided_at', 'created_at', 'updated_at']
    inlines = [ProductRequestDetailsInline]


class SalesRequestItemInline(admin.TabularInline):
    model = SalesRequestItem
    extra = 0


@admin.register(SalesRequest)
class SalesRequestAdmin(admin.ModelAdmin):
    list_display = ['request_id', 'customer', 'vyapari', 'total_value', 'status', 'bill_type', 'created_at']
    list_filter = ['status', 'bill_type']
    search_fields = ['request_id', 'customer']
    readonly_fields = ['request_id', 'total_value', 'decided_by', 'decided_at', 'created_at', 'updated_at']
    inlines = [SalesRequestItemInline]
