"""
WSGI config for the distribuidora project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'distribuidora.config.settings')

application = get_wsgi_application()
