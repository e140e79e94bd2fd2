from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal
from distribuidora.catalog.models import Product
from distribuidora.parties.models import Customer


class Order(models.Model):
    """A completed sale. Items and total are fixed once written"""
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    # Only field that may change after creation (administrative correction)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')

    def __str__(self):
        return f"Order #{self.id}"

    @property
    def customer_name(self):
        return self.customer.name if self.customer_id else None

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at', '-id']


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='order_items')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    returned_container = models.BooleanField(default=False)
    # Captured at sale time, never recomputed from the product
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    def __str__(self):
        return f"{self.quantity} x {self.product_id} @ {self.unit_price}"

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    class Meta:
        db_table = 'order_items'
        ordering = ['id']
