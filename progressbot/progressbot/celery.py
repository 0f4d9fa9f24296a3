# progressbot/progressbot/celery.py

"""
Celery Configuration for the Progressbot Project.

This module is the entry point for the Celery task queue that runs the second
phase of deferred Discord interactions. When a Celery worker is started, this
file is executed to:
1.  Ensure the Django settings are loaded correctly.
2.  Create and configure the Celery app instance.
3.  Automatically discover asynchronous tasks defined in the project's apps.
"""

import os
from celery import Celery

# --- Django Integration ---
# Must come before the app instance is created so workers run with the same
# settings as the web process.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'progressbot.settings')

# --- Celery Application Instance ---
app = Celery('progressbot')

# --- Configuration ---
# All Celery-related settings in `settings.py` are prefixed with 'CELERY_'
# (e.g. CELERY_BROKER_URL, CELERY_TASK_ALWAYS_EAGER).
app.config_from_object('django.conf:settings', namespace='CELERY')

# --- Task Discovery ---
# Picks up `discordapp/tasks.py`.
app.autodiscover_tasks()
