"""
WSGI config for the fence ledger backend.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'fenceledger.config.settings')

application = get_wsgi_application()
