# progressbot/progressbot/settings.py
"""
Django settings for the progressbot project.

This file contains the core configuration for the Django application: the
installed apps, middleware, logging, the Discord and backend credentials the
interaction endpoint needs, and the Celery broker used for deferred work.
Sensitive values are loaded from a .env file for security and portability.
"""

from pathlib import Path
import os
from dotenv import load_dotenv

load_dotenv()

# ==============================================================================
# CORE SETTINGS
# ==============================================================================

# Build paths inside the project like this: BASE_DIR / 'subdir'
BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'insecure-dev-key-change-me')
# The DEBUG flag is loaded as a boolean from an environment variable.
DEBUG = os.getenv('DJANGO_DEBUG', 'False') == 'True'

# Define the allowed hosts. For production, this should be your domain name.
ALLOWED_HOSTS = [
    "127.0.0.1",
    "localhost",
    *[host for host in os.getenv('PRODUCTION_HOST', '').split(',') if host],
]


# ==============================================================================
# APPLICATION-SPECIFIC SETTINGS (Loaded from Environment Variables)
# ==============================================================================

# Hex-encoded Ed25519 public key from the Discord developer portal.
DISCORD_PUBLIC_KEY = os.getenv("DISCORD_PUBLIC_KEY")
DISCORD_APPLICATION_ID = os.getenv("DISCORD_APPLICATION_ID")
# Only used by the `register_commands` management command.
DISCORD_BOT_TOKEN = os.getenv("DISCORD_BOT_TOKEN")
DISCORD_API_BASE = os.getenv("DISCORD_API_BASE", "https://discord.com/api/v10")
# Show failure details to users instead of generic error text.
DISCORD_EXPOSE_ERRORS = os.getenv("DISCORD_EXPOSE_ERRORS", "False").lower() == "true"

# Project-management backend. When unset, the backend is assumed to share the
# origin the interaction was delivered to.
BACKEND_URL = os.getenv("BACKEND_URL")
SERVICE_BOT_TOKEN = os.getenv("SERVICE_BOT_TOKEN")

# Outbound timeouts, in seconds. The assigned-projects lookup runs inside
# Discord's 3-second acknowledgment window.
ASSIGNED_PROJECTS_TIMEOUT = float(os.getenv("ASSIGNED_PROJECTS_TIMEOUT", "2.5"))
OUTBOUND_HTTP_TIMEOUT = float(os.getenv("OUTBOUND_HTTP_TIMEOUT", "10"))


# ==============================================================================
# DJANGO-SPECIFIC CONFIGURATION
# ==============================================================================

# Application definition
INSTALLED_APPS = [
    'discordapp.apps.DiscordappConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'progressbot.urls'

WSGI_APPLICATION = 'progressbot.wsgi.application'


# No database: wizard state travels in Discord component identifiers and
# projects live in the backend.
DATABASES = {}


# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True


# Logging Configuration
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'file': {
            'level': 'INFO',
            'class': 'logging.FileHandler',
            'filename': os.getenv('PROGRESSBOT_LOG_FILE', 'progressbot.log'),
            'formatter': 'standard',
            'delay': True,
        },
        'console': {
            'level': 'DEBUG',
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'loggers': {
        'discordapp': {
            'handlers': ['file', 'console'],
            'level': os.getenv('PROGRESSBOT_LOG_LEVEL', 'INFO'),
            'propagate': True,
        },
    },
}

# ==============================================================================
# CELERY CONFIGURATION
# ==============================================================================
# URL for the Redis message broker.
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
# Deferred interactions report their outcome to Discord, not to a result backend.
CELERY_TASK_IGNORE_RESULT = True
# Use JSON as the content type for tasks.
CELERY_ACCEPT_CONTENT = ['json']
# Use JSON as the task serializer.
CELERY_TASK_SERIALIZER = 'json'
# Run tasks inline instead of through the broker (local development and tests).
CELERY_TASK_ALWAYS_EAGER = os.getenv('CELERY_TASK_ALWAYS_EAGER', 'False') == 'True'
