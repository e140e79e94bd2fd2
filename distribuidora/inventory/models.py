from django.db import models
from distribuidora.catalog.models import Product


class StockMovement(models.Model):
    """Immutable record of a change to a product's full-container stock"""
    IN = 'IN'
    OUT = 'OUT'
    ADJUST = 'ADJUST'
    MOVEMENT_TYPE_CHOICES = [
        (IN, 'Stock In'),
        (OUT, 'Stock Out'),
        (ADJUST, 'Adjustment'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='movements')
    movement_type = models.CharField(max_length=10, choices=MOVEMENT_TYPE_CHOICES)
    # IN and OUT store the moved amount, ADJUST stores the signed delta
    quantity = models.IntegerField()
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='stock_movements')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.movement_type} {self.quantity} x {self.product_id}"

    @property
    def signed_quantity(self):
        """Effect of this movement on stock_full"""
        if self.movement_type == self.OUT:
            return -self.quantity
        return self.quantity

    class Meta:
        db_table = 'stock_movements'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', 'created_at'], name='idx_movement_product_created'),
        ]
