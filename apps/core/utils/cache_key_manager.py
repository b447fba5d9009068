import logging

from django.conf import settings

logger = logging.getLogger("monitoring")


class CacheKeyManager:
    """
    Centralized creation of cache keys based on templates defined in
    settings.CACHE_KEY_TEMPLATES.

    Usage:
        key = CacheKeyManager.make_key("negotiation", "stats", version=3, start=s, end=e)
        # → "negotiation:stats:v3:<s>:<e>"
    """

    @staticmethod
    def _get_template(resource_name: str, key_name: str) -> str:
        """Retrieve the raw template string, or log + raise if missing."""
        templates = getattr(settings, "CACHE_KEY_TEMPLATES", {})
        if resource_name not in templates:
            logger.error(
                f"[CacheKeyManager] No templates configured for resource '{resource_name}'"
            )
            raise KeyError(f"No templates for resource '{resource_name}'")
        resource_templates = templates[resource_name]
        if key_name not in resource_templates:
            logger.error(
                f"[CacheKeyManager] No template named '{key_name}' for resource '{resource_name}'"
            )
            raise KeyError(f"No key '{key_name}' for resource '{resource_name}'")
        return resource_templates[key_name]

    @staticmethod
    def make_key(resource_name: str, key_name: str, **kwargs) -> str:
        """
        Build an exact cache key.

        Django's cache framework applies KEY_PREFIX itself, so the key is
        returned unprefixed.
        """
        raw_template = CacheKeyManager._get_template(resource_name, key_name)
        try:
            filled = raw_template.format(**kwargs)
        except KeyError as e:
            missing = e.args[0]
            logger.error(
                f"[CacheKeyManager] Missing argument '{missing}' when formatting '{raw_template}'"
            )
            raise
        logger.debug(f"Generated cache key: {filled}")
        return filled
