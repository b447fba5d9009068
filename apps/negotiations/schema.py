from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema

from apps.negotiations.serializers import (
    CounterOfferSerializer,
    CreateNegotiationSerializer,
    ExpirySweepResultSerializer,
    NegotiationDetailSerializer,
    NegotiationHistorySerializer,
    NegotiationSerializer,
    NegotiationStatsSerializer,
    RejectNegotiationSerializer,
)

NEGOTIATION_ID = OpenApiParameter(
    name="id",
    description="UUID of the negotiation",
    required=True,
    type=OpenApiTypes.UUID,
    location=OpenApiParameter.PATH,
)

STATUS_FILTER = OpenApiParameter(
    name="status",
    description="Only negotiations in this status",
    required=False,
    type=OpenApiTypes.STR,
    location=OpenApiParameter.QUERY,
    enum=["pending", "counter_offered", "accepted", "rejected", "expired"],
)

LIMIT = OpenApiParameter(
    name="limit",
    description="Maximum number of results",
    required=False,
    type=OpenApiTypes.INT,
    location=OpenApiParameter.QUERY,
)

CREATE_NEGOTIATION = extend_schema(
    summary="Open a negotiation",
    description=(
        "Propose a price on an order. original_price defaults to the order's "
        "listing price when omitted."
    ),
    request=CreateNegotiationSerializer,
    responses={201: NegotiationSerializer},
)

RETRIEVE_NEGOTIATION = extend_schema(
    summary="Negotiation detail",
    parameters=[NEGOTIATION_ID],
    responses={200: NegotiationDetailSerializer},
)

NEGOTIATION_HISTORY = extend_schema(
    summary="Negotiation audit trail",
    parameters=[NEGOTIATION_ID],
    responses={200: NegotiationHistorySerializer(many=True)},
)

COUNTER_OFFER = extend_schema(
    summary="Counter offer",
    parameters=[NEGOTIATION_ID],
    request=CounterOfferSerializer,
    responses={200: NegotiationSerializer},
)

ACCEPT_NEGOTIATION = extend_schema(
    summary="Accept the current proposed price",
    parameters=[NEGOTIATION_ID],
    request=None,
    responses={200: NegotiationSerializer},
)

REJECT_NEGOTIATION = extend_schema(
    summary="Reject the negotiation",
    parameters=[NEGOTIATION_ID],
    request=RejectNegotiationSerializer,
    responses={200: NegotiationSerializer},
)

AUTO_EXPIRE = extend_schema(
    summary="Run the expiry sweep now (staff)",
    request=None,
    responses={200: ExpirySweepResultSerializer},
)

PARTICIPANT_LIST = extend_schema(
    parameters=[STATUS_FILTER, LIMIT],
    responses={200: NegotiationSerializer(many=True)},
)

PLAIN_LIST = extend_schema(responses={200: NegotiationSerializer(many=True)})

SEARCH_NEGOTIATIONS = extend_schema(
    summary="Search negotiation notes",
    parameters=[
        OpenApiParameter(
            name="q",
            description="Text matched against farmer and buyer notes",
            required=True,
            type=OpenApiTypes.STR,
            location=OpenApiParameter.QUERY,
        ),
        STATUS_FILTER,
        LIMIT,
    ],
    responses={200: NegotiationSerializer(many=True)},
)

NEGOTIATION_STATS = extend_schema(
    summary="Negotiation statistics for a date range (staff)",
    parameters=[
        OpenApiParameter(
            name="start_date",
            required=True,
            type=OpenApiTypes.DATETIME,
            location=OpenApiParameter.QUERY,
        ),
        OpenApiParameter(
            name="end_date",
            required=True,
            type=OpenApiTypes.DATETIME,
            location=OpenApiParameter.QUERY,
        ),
    ],
    responses={200: NegotiationStatsSerializer},
)
