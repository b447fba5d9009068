# -----------------------------------------------------------------------------
# CENTRALIZED CACHE-KEY TEMPLATES
#
# For each "resource" you want to cache, list every "key name" you might use.
# Use Python-format placeholders for variable parts.
#
# Usage:
#    CacheKeyManager.make_key("negotiation", "stats", version=3, start="2026-01-01", end="2026-02-01")
#    → "negotiation:stats:v3:2026-01-01:2026-02-01"
#
# The code will always prepend Django's KEY_PREFIX automatically.
# -----------------------------------------------------------------------------
CACHE_KEY_TEMPLATES = {
    "negotiation": {
        "stats": "negotiation:stats:v{version}:{start}:{end}",
        # Bumped on every write so every cached stats window goes stale together
        "stats_version": "negotiation:stats:version",
    },
}
