from .get_env import env

# Negotiation Feature Settings
NEGOTIATION_SETTINGS = {
    # Business Rules
    "DEFAULT_EXPIRY_HOURS": env.get(
        "NEGOTIATION_DEFAULT_EXPIRY_HOURS", default=72, cast_to=int
    ),  # Default 3 days
    "MAX_EXPIRY_DAYS": 30,  # expires_at may not be set further out than this
    "MAX_COUNTER_OFFERS": env.get(
        "NEGOTIATION_MAX_COUNTER_OFFERS", default=5, cast_to=int
    ),
    "MAX_DISCOUNT_PERCENT": 30,  # Max discount against the listing price
    "MIN_PRICE_DIFFERENCE_PERCENT": 1,  # Smaller non-zero changes are rejected
    "MAX_NOTES_LENGTH": 500,
    # Read side
    "EXPIRING_SOON_HOURS": 24,
    "DEFAULT_LIST_LIMIT": 50,
    "ACTIVE_LIST_LIMIT": 100,
    "SEARCH_LIMIT_DEFAULT": 20,
    "SEARCH_LIMIT_MAX": 100,
    "SEARCH_MIN_QUERY_LENGTH": 2,
    # Caching
    "STATS_CACHE_TIMEOUT": 300,  # 5 minutes
    # Collaborators
    "ORDER_LOOKUP": "apps.negotiations.collaborators.SettingsOrderLookup",
    "ORDER_PRICES": {},  # order_id -> listing price, used by SettingsOrderLookup
}
