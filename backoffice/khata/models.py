from decimal import Decimal

from django.conf import settings
from django.db import models


class ApprovalStatus(models.TextChoices):
    """Approval gate shared by parties, ledger transactions and payments"""
    PENDING = 'Pending', 'Pending'
    APPROVED = 'Approved', 'Approved'
    REJECTED = 'Rejected', 'Rejected'


class LedgerParty(models.Model):
    """Counterparty with a running khata balance"""
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
    ]

    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='Active')
    approval_status = models.CharField(max_length=10, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='%(class)s_created')
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='%(class)s_approved')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_approved(self):
        return self.approval_status == ApprovalStatus.APPROVED


class Vyapari(LedgerParty):
    """Trader"""

    class Meta(LedgerParty.Meta):
        db_table = 'vyaparis'


class Karigar(LedgerParty):
    """Artisan"""
    specialization = models.CharField(max_length=200, blank=True, null=True)

    class Meta(LedgerParty.Meta):
        db_table = 'karigars'


class LedgerTransaction(models.Model):
    """
    Signed ledger entry against a party.

    Positive amount: the shop owes the party.
    Negative amount: the party owes the shop.
    """
    transaction_id = models.CharField(max_length=30, unique=True)
    description = models.TextField()
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    items = models.JSONField(null=True, blank=True)
    approval_status = models.CharField(max_length=10, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='%(class)s_created')
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='%(class)s_approved')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.transaction_id} ({self.amount})"


class VyapariTransaction(LedgerTransaction):
    vyapari = models.ForeignKey(Vyapari, on_delete=models.CASCADE, related_name='transactions')

    class Meta(LedgerTransaction.Meta):
        db_table = 'vyapari_transactions'


class KarigarTransaction(LedgerTransaction):
    karigar = models.ForeignKey(Karigar, on_delete=models.CASCADE, related_name='transactions')

    class Meta(LedgerTransaction.Meta):
        db_table = 'karigar_transactions'


class LedgerPayment(models.Model):
    """Unsigned payment made by the shop to a party; reduces what the shop owes"""
    PAYMENT_MODE_CHOICES = [
        ('cash', 'Cash'),
        ('upi', 'UPI'),
        ('bank_transfer', 'Bank Transfer'),
        ('cheque', 'Cheque'),
        ('gold', 'Gold'),
        ('other', 'Other'),
    ]

    payment_id = models.CharField(max_length=30, unique=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES)
    reference_number = models.CharField(max_length=100, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    approval_status = models.CharField(max_length=10, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='%(class)s_created')
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='%(class)s_approved')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.payment_id} ({self.amount})"


class VyapariPayment(LedgerPayment):
    vyapari = models.ForeignKey(Vyapari, on_delete=models.CASCADE, related_name='payments')

    class Meta(LedgerPayment.Meta):
        db_table = 'vyapari_payments'


class KarigarPayment(LedgerPayment):
    karigar = models.ForeignKey(Karigar, on_delete=models.CASCADE, related_name='payments')

    class Meta(LedgerPayment.Meta):
        db_table = 'karigar_payments'
