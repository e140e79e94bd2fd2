from django.contrib import admin
from .models import StockMovement


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'product', 'movement_type', 'quantity', 'created_by']
    list_filter = ['movement_type', 'created_at']
    search_fields = ['product__name']
    readonly_fields = ['product', 'movement_type', 'quantity', 'created_by', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
