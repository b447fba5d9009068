import uuid

from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    """
    An abstract base class that provides a UUID primary key and
    created_at / updated_at fields.

    Timestamps default to ``timezone.now`` rather than ``auto_now`` so the
    service layer can stamp them from its own clock.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        abstract = True
