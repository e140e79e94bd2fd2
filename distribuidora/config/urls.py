"""
URL configuration for the distribuidora project.

Every app mounts its endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Distribuidora PDV Admin"
admin.site.site_title = "Distribuidora PDV"
admin.site.index_title = "Painel administrativo"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('distribuidora.core.urls')),
    path('api/v1/', include('distribuidora.catalog.urls')),
    path('api/v1/', include('distribuidora.inventory.urls')),
    path('api/v1/', include('distribuidora.parties.urls')),
    path('api/v1/', include('distribuidora.pos.urls')),
    path('api/v1/', include('distribuidora.reports.urls')),
]
