import logging

from django.core.cache import cache

from .cache_key_manager import CacheKeyManager

logger = logging.getLogger("monitoring")


class CacheManager:
    """
    Version-counter invalidation driven by settings.CACHE_KEY_TEMPLATES.

    Families of keys that cannot be enumerated (e.g. stats per date window)
    fold a version number into the key; bumping the counter orphans every
    key built with the old value.
    """

    @staticmethod
    def get_version(resource_name: str, key_name: str) -> int:
        version_key = CacheKeyManager.make_key(resource_name, key_name)
        return cache.get_or_set(version_key, 1, timeout=None)

    @staticmethod
    def bump_version(resource_name: str, key_name: str) -> int:
        version_key = CacheKeyManager.make_key(resource_name, key_name)
        try:
            version = cache.incr(version_key)
        except ValueError:
            # Counter missing (evicted or never read); start a new generation.
            cache.set(version_key, 2, timeout=None)
            version = 2
        logger.debug(f"Bumped cache version {version_key} to {version}")
        return version
