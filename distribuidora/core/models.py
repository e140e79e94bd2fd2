from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Application user with a POS role"""
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('operator', 'Operator'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='operator')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_admin(self):
        return self.role == 'admin' or self.is_superuser

    class Meta:
        db_table = 'users'


class Setting(models.Model):
    """System settings (company data printed on receipts, thresholds)"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True)
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    @classmethod
    def get_value(cls, key, default=None):
        row = cls.objects.filter(key=key).first()
        return row.value if row else default

    class Meta:
        db_table = 'settings'
        ordering = ['key']


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('order_create', 'Order Created'),
        ('order_update', 'Order Updated'),
        ('order_delete', 'Order Deleted'),
        ('stock_in', 'Stock In'),
        ('stock_out', 'Stock Out'),
        ('stock_adjust', 'Stock Adjustment'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_e1c6a1_idx'),
            models.Index(fields=['action'], name='audit_logs_action_5d2b7f_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_9a4c3e_idx'),
        ]
