from celery.schedules import crontab

# Celery Beat Schedule Configuration for negotiation housekeeping
CELERY_BEAT_SCHEDULE = {
    # ============================================
    # NEGOTIATION EXPIRY SWEEP
    # ============================================
    # Flip stale pending/counter-offered negotiations to expired
    "expire-negotiations": {
        "task": "apps.negotiations.tasks.expire_negotiations",
        "schedule": crontab(minute="*/5"),  # Every 5 minutes
        "options": {
            "expires": 240,  # Task expires after 4 minutes
            "retry": True,
            "retry_policy": {
                "max_retries": 3,
                "interval_start": 10,
                "interval_step": 10,
                "interval_max": 60,
            },
        },
    },
}
