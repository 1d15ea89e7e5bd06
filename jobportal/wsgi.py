"""WSGI config for jobportal project."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "jobportal.settings")

application = get_wsgi_application()
