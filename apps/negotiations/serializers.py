from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers

from apps.core.serializers import TimestampedModelSerializer
from apps.negotiations.models import (
    Negotiation,
    NegotiationHistory,
    NegotiationStatus,
)
from apps.negotiations.utils.statuses import ACTIVE_STATUSES
from apps.negotiations.validators import discount_percentage

PRICE_FIELD_KWARGS = {
    "max_digits": 12,
    "decimal_places": 2,
    "max_value": Decimal("9999999999.99"),
}


class NegotiationHistorySerializer(TimestampedModelSerializer):
    """Serializer for negotiation history"""

    class Meta:
        model = NegotiationHistory
        fields = [
            "id",
            "action",
            "actor_id",
            "price",
            "from_status",
            "to_status",
            "notes",
            "created_at",
        ]


class NegotiationSerializer(TimestampedModelSerializer):
    """Main serializer for negotiations"""

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    discount_percentage = serializers.SerializerMethodField()
    time_remaining = serializers.SerializerMethodField()
    can_respond = serializers.SerializerMethodField()

    class Meta:
        model = Negotiation
        fields = [
            "id",
            "order_id",
            "farmer_id",
            "buyer_id",
            "product_id",
            "original_price",
            "proposed_price",
            "final_price",
            "status",
            "status_display",
            "counter_offer_count",
            "farmer_notes",
            "buyer_notes",
            "expires_at",
            "version",
            "last_action_by",
            "discount_percentage",
            "time_remaining",
            "can_respond",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def _now(self):
        return self.context.get("clock", timezone.now)()

    def get_discount_percentage(self, obj) -> float:
        price_to_compare = obj.final_price or obj.proposed_price
        return round(float(discount_percentage(obj.original_price, price_to_compare)), 2)

    def get_time_remaining(self, obj) -> str | None:
        """Human readable time left before the offer lapses"""
        if obj.status not in ACTIVE_STATUSES:
            return None
        now = self._now()
        if now >= obj.expires_at:
            return "Expired"
        diff = obj.expires_at - now
        if diff.days > 0:
            return f"{diff.days} days remaining"
        elif diff.seconds >= 3600:
            hours = diff.seconds // 3600
            return f"{hours} hours remaining"
        minutes = diff.seconds // 60
        return f"{minutes} minutes remaining"

    def get_can_respond(self, obj) -> bool:
        """Check if the current user can still counter, accept or reject"""
        request = self.context.get("request")
        if not request or not request.user.is_authenticated:
            return False
        return (
            obj.is_participant(request.user.pk)
            and obj.status in ACTIVE_STATUSES
            and not obj.is_past_expiry(self._now())
        )


class NegotiationDetailSerializer(NegotiationSerializer):
    history = NegotiationHistorySerializer(many=True, read_only=True)

    class Meta(NegotiationSerializer.Meta):
        fields = NegotiationSerializer.Meta.fields + ["history"]
        read_only_fields = fields


class CreateNegotiationSerializer(serializers.Serializer):
    """Serializer for opening a negotiation"""

    order_id = serializers.CharField(max_length=64)
    farmer_id = serializers.CharField(max_length=64)
    buyer_id = serializers.CharField(max_length=64)
    product_id = serializers.CharField(max_length=64)
    original_price = serializers.DecimalField(
        **PRICE_FIELD_KWARGS, required=False, allow_null=True
    )
    proposed_price = serializers.DecimalField(**PRICE_FIELD_KWARGS)
    notes = serializers.CharField(required=False, allow_blank=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)


class CounterOfferSerializer(serializers.Serializer):
    """Serializer for a counter offer"""

    proposed_price = serializers.DecimalField(**PRICE_FIELD_KWARGS)
    notes = serializers.CharField(required=False, allow_blank=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)


class RejectNegotiationSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class NegotiationListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=NegotiationStatus.choices, required=False, allow_blank=True
    )
    limit = serializers.IntegerField(required=False, min_value=1)


class NegotiationSearchQuerySerializer(serializers.Serializer):
    """
    Shape-only checks for the search query string; the business limits
    (minimum query length, maximum limit) are enforced by the service.
    """

    q = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    status = serializers.CharField(required=False, allow_blank=True)
    farmer_id = serializers.CharField(required=False, max_length=64)
    buyer_id = serializers.CharField(required=False, max_length=64)
    limit = serializers.IntegerField(required=False)


class NegotiationStatsQuerySerializer(serializers.Serializer):
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()

    def validate(self, data):
        """Cross-field validation"""
        if data["start_date"] > data["end_date"]:
            raise serializers.ValidationError(
                {"start_date": "Start date must be before end date"}
            )
        return data


class NegotiationStatsSerializer(serializers.Serializer):
    """Serializer for negotiation statistics"""

    total_negotiations = serializers.IntegerField()
    accepted = serializers.IntegerField()
    rejected = serializers.IntegerField()
    pending = serializers.IntegerField()
    expired = serializers.IntegerField()
    average_discount_percentage = serializers.FloatField()
    average_rounds = serializers.FloatField()
    average_resolution_hours = serializers.FloatField()

    success_rate_display = serializers.SerializerMethodField()

    def get_success_rate_display(self, obj) -> str:
        resolved = obj["accepted"] + obj["rejected"] + obj["expired"]
        if not resolved:
            return "0.0%"
        return f"{obj['accepted'] / resolved * 100:.1f}%"


class ExpirySweepResultSerializer(serializers.Serializer):
    expired_count = serializers.IntegerField()
