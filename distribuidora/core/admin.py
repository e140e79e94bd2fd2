from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Setting, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'role', 'is_active', 'is_superuser', 'created_at']
    list_filter = ['role', 'is_active', 'is_superuser']
    search_fields = ['username']
    ordering = ['username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('POS', {'fields': ('role',)}),
    )


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'description']
    ordering = ['key']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'user', 'action', 'model_name', 'object_id', 'object_name']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['object_name', 'object_id', 'user__username']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'
