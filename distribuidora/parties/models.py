from django.db import models


class Customer(models.Model):
    """Customers"""
    name = models.CharField(max_length=200, db_index=True)
    phone = models.CharField(max_length=30, blank=True, null=True, db_index=True)
    address = models.TextField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'customers'
        ordering = ['name']
