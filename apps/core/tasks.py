import logging

from celery import Task
from django.db import DatabaseError, InterfaceError

logger = logging.getLogger(__name__)


class BaseTaskWithRetry(Task):
    """
    Base class for periodic housekeeping tasks.

    Database hiccups are retried with exponential backoff; anything else
    fails the task immediately.
    """

    autoretry_for = (DatabaseError, InterfaceError)
    max_retries = 3
    retry_backoff = True
    retry_backoff_max = 300
    retry_jitter = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Task {self.name} [{task_id}] failed: {exc}")
        super().on_failure(exc, task_id, args, kwargs, einfo)
