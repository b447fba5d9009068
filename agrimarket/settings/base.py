import environ
from datetime import timedelta
from pathlib import Path

import os

from .utils.get_env import env

# # Initialize environment variables with django-environ
BASE_DIR = Path(__file__).resolve().parent.parent.parent
environ.Env.read_env(os.path.join(BASE_DIR, ".env"))


# -----------------------------------------------------------------------------
# Basic Config
# -----------------------------------------------------------------------------
ROOT_URLCONF = "agrimarket.urls"
ASGI_APPLICATION = "agrimarket.asgi.application"
WSGI_APPLICATION = "agrimarket.wsgi.application"
SECRET_KEY = env.get("DJANGO_SECRET_KEY", default="django-insecure$@")
# -----------------------------------------------------------------------------
# Time & Language
# -----------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# -----------------------------------------------------------------------------
# Applications configuration
# -----------------------------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # 3rd party apps
    "rest_framework",
    "django_filters",
    "drf_spectacular",
    # local apps
    "apps.core.apps.CoreConfig",
    "apps.negotiations.apps.NegotiationsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# -----------------------------------------------------------------------------
# Rest Framework
# -----------------------------------------------------------------------------

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "apps.core.authentication.CookieJWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
    "DEFAULT_FILTER_BACKENDS": ("django_filters.rest_framework.DjangoFilterBackend",),
    "DEFAULT_RENDERER_CLASSES": ("rest_framework.renderers.JSONRenderer",),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "apps.core.exceptions.custom_exception_handler",
    "DEFAULT_THROTTLE_RATES": {
        "anon": "100/day",
        "negotiation": "60/min",  # read and list actions
        "negotiation_create": "5/min",  # new negotiations per min
        "negotiation_respond": "30/min",  # counter, accept, reject
    },
}

# -----------------------------------------------------------------------------
# Simple JWT
# -----------------------------------------------------------------------------

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=15),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
    "ALGORITHM": "HS256",
    "SIGNING_KEY": env.get("DJANGO_SECRET_KEY", default="django-insecure$@"),
    "AUTH_HEADER_TYPES": ("Bearer",),
    "USER_ID_FIELD": "id",
    "USER_ID_CLAIM": "user_id",
}

# - -----------------------------------------------------------------------------
# JWT Authentication
# ------------------------------------------------------------------------------
JWT_AUTH_COOKIE = "access_token"

# -----------------------------------------------------------------------------
# DRF Spectacular Settings
# -----------------------------------------------------------------------------

SPECTACULAR_SETTINGS = {
    "TITLE": "AgriMarket Negotiations API",
    "DESCRIPTION": "Price negotiation between farmers and buyers",
    "VERSION": "1.0.0",
    "ENUM_NAME_OVERRIDES": {
        "NegotiationStatusEnum": "apps.negotiations.models.NegotiationStatus",
    },
}

# -----------------------------------------------------------------------------
# Static Base Configuration
# -----------------------------------------------------------------------------
STATIC_URL = "/static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------------------------------
# Celery
# -----------------------------------------------------------------------------
CELERY_ACCEPT_CONTENT = ["application/json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"

CELERY_TIMEZONE = TIME_ZONE
CELERY_ENABLE_UTC = True

from .utils.celery_beat_schedule import CELERY_BEAT_SCHEDULE  # noqa: E402 F401

CELERY_TASK_ALWAYS_EAGER = False  # Set to True for synchronous execution in tests
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_TASK_ACKS_LATE = True

# Logging configuration for Celery
CELERY_WORKER_HIJACK_ROOT_LOGGER = False
CELERY_WORKER_LOG_FORMAT = "[%(asctime)s: %(levelname)s/%(processName)s] %(message)s"
CELERY_WORKER_TASK_LOG_FORMAT = "[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s"

CELERY_TASK_ROUTES = {
    "apps.negotiations.tasks.expire_negotiations": {
        "queue": "high_priority",
        "routing_key": "high_priority",
    },
    "apps.negotiations.tasks.*": {
        "queue": "default",
        "routing_key": "default",
    },
}

CELERY_TASK_DEFAULT_QUEUE = "default"
CELERY_TASK_QUEUES = {
    "high_priority": {
        "exchange": "high_priority",
        "exchange_type": "direct",
        "routing_key": "high_priority",
    },
    "default": {
        "exchange": "default",
        "exchange_type": "direct",
        "routing_key": "default",
    },
}

# -----------------------------------------------------------------------------
# Import modular settings
# -----------------------------------------------------------------------------
from .utils.logging import *  # noqa: F403 F401 E402
from .utils.cache_keys import *  # noqa: F403 F401 E402
from .utils.negotiation import *  # noqa: F403 F401 E402
