import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


STATUS_CHOICES = [
    ("pending", "Pending"),
    ("counter_offered", "Counter Offered"),
    ("accepted", "Accepted"),
    ("rejected", "Rejected"),
    ("expired", "Expired"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Negotiation",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True, default=django.utils.timezone.now
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("order_id", models.CharField(db_index=True, max_length=64)),
                ("farmer_id", models.CharField(db_index=True, max_length=64)),
                ("buyer_id", models.CharField(db_index=True, max_length=64)),
                ("product_id", models.CharField(db_index=True, max_length=64)),
                (
                    "original_price",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                (
                    "proposed_price",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                (
                    "final_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("counter_offer_count", models.PositiveIntegerField(default=0)),
                ("farmer_notes", models.TextField(blank=True, default="")),
                ("buyer_notes", models.TextField(blank=True, default="")),
                ("expires_at", models.DateTimeField(db_index=True)),
                ("version", models.PositiveIntegerField(default=1)),
                (
                    "last_action_by",
                    models.CharField(blank=True, default="", max_length=64),
                ),
            ],
            options={
                "db_table": "negotiations",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "expires_at"],
                        name="negotiation_status_expiry_idx",
                    ),
                    models.Index(
                        fields=["farmer_id", "status"],
                        name="negotiation_farmer_status_idx",
                    ),
                    models.Index(
                        fields=["buyer_id", "status"],
                        name="negotiation_buyer_status_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("farmer_id", models.F("buyer_id")), _negated=True
                        ),
                        name="negotiation_distinct_parties",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("original_price__gt", 0)),
                        name="negotiation_original_price_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("proposed_price__gt", 0)),
                        name="negotiation_proposed_price_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="NegotiationHistory",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True, default=django.utils.timezone.now
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("counter_offered", "Counter Offered"),
                            ("accepted", "Accepted"),
                            ("rejected", "Rejected"),
                            ("expired", "Expired"),
                        ],
                        max_length=30,
                    ),
                ),
                ("actor_id", models.CharField(max_length=64)),
                (
                    "price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                (
                    "from_status",
                    models.CharField(
                        blank=True, choices=STATUS_CHOICES, default="", max_length=20
                    ),
                ),
                (
                    "to_status",
                    models.CharField(choices=STATUS_CHOICES, max_length=20),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "negotiation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="history",
                        to="negotiations.negotiation",
                    ),
                ),
            ],
            options={
                "db_table": "negotiation_history",
                "ordering": ["-created_at"],
                "verbose_name_plural": "Negotiation histories",
            },
        ),
    ]
