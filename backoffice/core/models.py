from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model carrying the shop role claim"""
    ROLE_ADMIN = 'admin'
    ROLE_USER = 'user'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_USER, 'User'),
    ]

    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_USER)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for privileged operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('request_approve', 'Request Approved'),
        ('request_reject', 'Request Rejected'),
        ('request_purge', 'Requests Purged'),
        ('stock_sale', 'Stock Removed (Sale)'),
        ('bill_create', 'Bill Created'),
        ('bill_update', 'Bill Updated'),
        ('bill_purge', 'Bills Purged'),
        ('ledger_approve', 'Ledger Entry Approved'),
        ('ledger_reject', 'Ledger Entry Rejected'),
        ('party_approve', 'Party Approved'),
        ('party_reject', 'Party Rejected'),
        ('role_change', 'Role Changed'),
        ('setting_change', 'Setting Changed'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, customer)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., request id, bill number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_6a9c1e_idx'),
            models.Index(fields=['action'], name='audit_logs_action_4f2b7d_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_8d3e2a_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__1b5c9f_idx'),
        ]


class DocumentSequence(models.Model):
    """Per-year counter backing human-readable document numbers (PR-2025-0001)"""
    prefix = models.CharField(max_length=10)
    year = models.PositiveIntegerField()
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.prefix}-{self.year} ({self.last_value})"

    class Meta:
        db_table = 'document_sequences'
        unique_together = [['prefix', 'year']]
