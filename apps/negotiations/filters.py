import django_filters

from apps.negotiations.models import Negotiation, NegotiationStatus


class NegotiationFilter(django_filters.FilterSet):
    """Filter class for negotiations"""

    status = django_filters.ChoiceFilter(choices=NegotiationStatus.choices)
    order_id = django_filters.CharFilter()
    product_id = django_filters.CharFilter()
    farmer_id = django_filters.CharFilter()
    buyer_id = django_filters.CharFilter()
    created_after = django_filters.DateTimeFilter(
        field_name="created_at", lookup_expr="gte"
    )
    created_before = django_filters.DateTimeFilter(
        field_name="created_at", lookup_expr="lte"
    )
    expires_before = django_filters.DateTimeFilter(
        field_name="expires_at", lookup_expr="lte"
    )

    class Meta:
        model = Negotiation
        fields = [
            "status",
            "order_id",
            "product_id",
            "farmer_id",
            "buyer_id",
            "created_after",
            "created_before",
            "expires_before",
        ]
