from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'distribuidora.catalog'

    def ready(self):
        """Import signals when app is ready"""
        import distribuidora.catalog.cache  # noqa: F401  # Cache invalidation signals
