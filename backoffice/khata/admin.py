from django.contrib import admin
from .models import (
    Vyapari, VyapariTransaction, VyapariPayment,
    Karigar, KarigarTransaction, KarigarPayment,
)


@admin.register(Vyapari, Karigar)
class PartyAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'status', 'approval_status', 'created_at']
    list_filter = ['status', 'approval_status']
    search_fields = ['name', 'phone', 'email']
    readonly_fields = ['created_at', 'updated_at', 'approved_at']


@admin.register(VyapariTransaction, KarigarTransaction)
class LedgerTransactionAdmin(admin.ModelAdmin):
    list_display = ['transaction_id', 'amount', 'approval_status', 'created_by', 'created_at']
    list_filter = ['approval_status', 'created_at']
    search_fields = ['transaction_id', 'description']
    readonly_fields = ['transaction_id', 'created_at', 'updated_at', 'approved_at']


@admin.register(VyapariPayment, KarigarPayment)
class LedgerPaymentAdmin(admin.ModelAdmin):
    list_display = ['payment_id', 'amount', 'payment_mode', 'approval_status', 'created_at']
    list_filter = ['approval_status', 'payment_mode', 'created_at']
    search_fields = ['payment_id', 'reference_number', 'notes']
    readonly_fields = ['payment_id', 'created_at', 'updated_at', 'approved_at']
