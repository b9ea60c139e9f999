from django.contrib import admin
from .models import Transaction, Bill


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['order_id', 'customer', 'total_amount', 'bill_type', 'status', 'created_at']
    list_filter = ['bill_type', 'status', 'created_at']
    search_fields = ['order_id', 'customer']
    readonly_fields = ['order_id', 'items', 'created_at']


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ['bill_number', 'bill_type', 'customer_name', 'date', 'total_amount', 'is_taxable']
    list_filter = ['bill_type', 'is_taxable', 'date']
    search_fields = ['bill_number', 'customer_name', 'customer_gstin']
    readonly_fields = ['bill_number', 'created_at', 'updated_at']
