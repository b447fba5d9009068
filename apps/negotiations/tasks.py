import logging

from celery import shared_task
from django.db import DatabaseError

from apps.core.tasks import BaseTaskWithRetry
from apps.negotiations.exceptions import NegotiationInternalError
from apps.negotiations.services import build_negotiation_service

logger = logging.getLogger("negotiation_tasks")


@shared_task(bind=True, base=BaseTaskWithRetry)
def expire_negotiations(self):
    """
    Periodic sweep that moves stale pending/counter-offered negotiations to
    expired. Safe to run while users are accepting or rejecting offers, and
    safe to run twice.
    """
    service = build_negotiation_service()
    result = service.auto_expire_negotiations()

    if not result.success:
        if isinstance(result.error, NegotiationInternalError):
            # Let the retry policy handle infrastructure failures
            raise DatabaseError(str(result.error.detail))
        logger.error(f"Negotiation expiry sweep failed: {result.error.detail}")
        return {"expired_count": 0, "error": result.error_code}

    logger.info(f"Negotiation expiry sweep expired {result.data['expired_count']} negotiations")
    return result.data
