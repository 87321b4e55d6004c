"""
WSGI config.

Production: DJANGO_SETTINGS_MODULE=renal_backend.settings_prod
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'renal_backend.settings')

application = get_wsgi_application()
