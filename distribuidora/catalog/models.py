from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from decimal import Decimal


class Product(models.Model):
    """Product master: one sellable item with its container stock"""
    TYPE_CHOICES = [
        ('water', 'Water'),
        ('gas', 'Gas'),
        ('coal', 'Coal'),
        ('other', 'Other'),
    ]

    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True, null=True)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='other')
    # price_full: customer takes the container; price_refill: customer returns an empty one
    price_full = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                     validators=[MinValueValidator(Decimal('0.00'))])
    price_refill = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                       validators=[MinValueValidator(Decimal('0.00'))])
    stock_full = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    stock_empty = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    expiry_month = models.PositiveSmallIntegerField(null=True, blank=True,
                                                    validators=[MinValueValidator(1), MaxValueValidator(12)])
    expiry_year = models.PositiveSmallIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'products'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(condition=models.Q(stock_full__gte=0), name='product_stock_full_non_negative'),
            models.CheckConstraint(condition=models.Q(stock_empty__gte=0), name='product_stock_empty_non_negative'),
        ]
