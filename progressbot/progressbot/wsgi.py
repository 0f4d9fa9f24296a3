# progressbot/progressbot/wsgi.py

"""
WSGI config for the progressbot project.

It exposes the WSGI callable as a module-level variable named ``application``.
The WSGI server calls ``close()`` on each response after sending it, which is
when deferred interactions hand their work to Celery.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'progressbot.settings')

application = get_wsgi_application()
