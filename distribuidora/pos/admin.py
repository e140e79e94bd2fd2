from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'quantity', 'returned_container', 'unit_price']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'total', 'created_by', 'created_at']
    list_filter = ['created_at']
    search_fields = ['customer__name', 'customer__phone']
    readonly_fields = ['customer', 'total', 'created_by']
    inlines = [OrderItemInline]
