from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'price_full', 'price_refill', 'stock_full', 'stock_empty', 'updated_at']
    list_filter = ['type']
    search_fields = ['name', 'description']
    ordering = ['name']
