from .base import *  # noqa: F401, F403
from .base import LOGGING, NEGOTIATION_SETTINGS
from .utils.logging import console_only

DEBUG = False
SECRET_KEY = "test-secret-key"
ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "agrimarket-tests",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Override Celery settings for testing
CELERY_TASK_ALWAYS_EAGER = True  # Synchronous execution for tests
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

# Disable beat scheduler for tests
CELERY_BEAT_SCHEDULE = {}

# Throttling would make endpoint tests order dependent
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {  # noqa: F405
    scope: "10000/min" for scope in REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"]  # noqa: F405
}

NEGOTIATION_SETTINGS = {
    **NEGOTIATION_SETTINGS,
    "DEFAULT_EXPIRY_HOURS": 72,
    "MAX_COUNTER_OFFERS": 3,
    "MAX_DISCOUNT_PERCENT": 20,
    "MIN_PRICE_DIFFERENCE_PERCENT": 1,
    "ORDER_PRICES": {"order-priced": "1000.00"},
}

LOGGING = console_only(LOGGING)
