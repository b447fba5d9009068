from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings


@dataclass(frozen=True)
class NegotiationConfig:
    """
    Business rule parameters for negotiations.

    Built from ``settings.NEGOTIATION_SETTINGS`` in the application; tests
    construct their own instances.
    """

    default_expiry_hours: int = 72
    max_expiry_days: int = 30
    max_counter_offers: int = 5
    max_discount_percent: Decimal = Decimal("30")
    min_price_difference_percent: Decimal = Decimal("1")
    max_notes_length: int = 500
    expiring_soon_hours: int = 24
    default_list_limit: int = 50
    active_list_limit: int = 100
    search_limit_default: int = 20
    search_limit_max: int = 100
    search_min_query_length: int = 2
    stats_cache_timeout: int = 300

    @classmethod
    def from_settings(cls, overrides: Optional[Dict[str, Any]] = None):
        raw = {**getattr(settings, "NEGOTIATION_SETTINGS", {}), **(overrides or {})}
        values = {}
        for f in fields(cls):
            key = f.name.upper()
            if key not in raw:
                continue
            value = raw[key]
            if f.name in ("max_discount_percent", "min_price_difference_percent"):
                value = Decimal(str(value))
            values[f.name] = value
        return cls(**values)
