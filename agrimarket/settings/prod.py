from .base import *  # noqa

from .utils.get_env import env

# -----------------------------------------------------------------------------
# Production Settings
# -----------------------------------------------------------------------------
DEBUG = False
SECRET_KEY = env.get("DJANGO_SECRET_KEY")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")

# -----------------------------------------------------------------------------
# Databases for Production
# -----------------------------------------------------------------------------
DATABASES = {"default": env.db("DATABASE_URL")}

# -----------------------------------------------------------------------------
# Cache - Production
# -----------------------------------------------------------------------------
CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": env.get("REDIS_URL"),
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
        },
        "KEY_PREFIX": "agrimarket",
    }
}

# -----------------------------------------------------------------------------
# Celery - Production
# -----------------------------------------------------------------------------
CELERY_BROKER_URL = env.get("CELERY_BROKER_URL")
CELERY_RESULT_BACKEND = env.get("CELERY_RESULT_BACKEND")

# -----------------------------------------------------------------------------
# Security
# -----------------------------------------------------------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
