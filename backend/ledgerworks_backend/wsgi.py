"""WSGI entry point for the Ledgerworks backend."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ledgerworks_backend.settings")

application = get_wsgi_application()
