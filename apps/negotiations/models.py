from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from apps.core.models import BaseModel


class NegotiationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COUNTER_OFFERED = "counter_offered", "Counter Offered"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    EXPIRED = "expired", "Expired"


class Negotiation(BaseModel):
    """
    A price proposal between a farmer and a buyer over one order.

    Rows are never deleted; expiry is a status change. ``version`` is the
    optimistic concurrency token and goes up by one on every write.
    """

    order_id = models.CharField(max_length=64, db_index=True)
    farmer_id = models.CharField(max_length=64, db_index=True)
    buyer_id = models.CharField(max_length=64, db_index=True)
    product_id = models.CharField(max_length=64, db_index=True)

    original_price = models.DecimalField(max_digits=12, decimal_places=2)
    proposed_price = models.DecimalField(max_digits=12, decimal_places=2)
    final_price = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )

    status = models.CharField(
        max_length=20,
        choices=NegotiationStatus.choices,
        default=NegotiationStatus.PENDING,
        db_index=True,
    )
    counter_offer_count = models.PositiveIntegerField(default=0)

    farmer_notes = models.TextField(blank=True, default="")
    buyer_notes = models.TextField(blank=True, default="")

    expires_at = models.DateTimeField(db_index=True)

    version = models.PositiveIntegerField(default=1)
    last_action_by = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        db_table = "negotiations"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["status", "expires_at"], name="negotiation_status_expiry_idx"
            ),
            models.Index(
                fields=["farmer_id", "status"], name="negotiation_farmer_status_idx"
            ),
            models.Index(
                fields=["buyer_id", "status"], name="negotiation_buyer_status_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(farmer_id=F("buyer_id")),
                name="negotiation_distinct_parties",
            ),
            models.CheckConstraint(
                condition=Q(original_price__gt=0),
                name="negotiation_original_price_positive",
            ),
            models.CheckConstraint(
                condition=Q(proposed_price__gt=0),
                name="negotiation_proposed_price_positive",
            ),
        ]

    def __str__(self):
        return f"Negotiation #{self.id} - order {self.order_id} - {self.status}"

    def is_participant(self, user_id) -> bool:
        return str(user_id) in (self.farmer_id, self.buyer_id)

    def is_past_expiry(self, now=None) -> bool:
        return self.expires_at <= (now or timezone.now())


class NegotiationHistory(BaseModel):
    """Append-only audit trail, one row per lifecycle event."""

    ACTION_CHOICES = (
        ("created", "Created"),
        ("counter_offered", "Counter Offered"),
        ("accepted", "Accepted"),
        ("rejected", "Rejected"),
        ("expired", "Expired"),
    )

    negotiation = models.ForeignKey(
        Negotiation, on_delete=models.PROTECT, related_name="history"
    )
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    actor_id = models.CharField(max_length=64)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    from_status = models.CharField(
        max_length=20, choices=NegotiationStatus.choices, blank=True, default=""
    )
    to_status = models.CharField(max_length=20, choices=NegotiationStatus.choices)
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "negotiation_history"
        ordering = ["-created_at"]
        verbose_name_plural = "Negotiation histories"

    def __str__(self):
        return f"{self.action} by {self.actor_id} on {self.created_at.strftime('%Y-%m-%d %H:%M')}"
