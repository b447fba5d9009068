import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from apps.core.authentication import acting_user_id
from apps.core.views import BaseViewSet
from apps.negotiations import schema
from apps.negotiations.filters import NegotiationFilter
from apps.negotiations.models import Negotiation
from apps.negotiations.permissions import IsStaff
from apps.negotiations.serializers import (
    CounterOfferSerializer,
    CreateNegotiationSerializer,
    NegotiationDetailSerializer,
    NegotiationHistorySerializer,
    NegotiationListQuerySerializer,
    NegotiationSearchQuerySerializer,
    NegotiationSerializer,
    NegotiationStatsQuerySerializer,
    NegotiationStatsSerializer,
    RejectNegotiationSerializer,
)
from apps.negotiations.services import build_negotiation_service
from apps.negotiations.utils.rate_limiting import (
    NegotiationCreateRateThrottle,
    NegotiationRateThrottle,
    NegotiationRespondRateThrottle,
)

logger = logging.getLogger("negotiation_performance")


class NegotiationViewSet(BaseViewSet):
    """
    Negotiation endpoints. Every action delegates to ``NegotiationService``
    and answers in the standard response envelope.
    """

    queryset = Negotiation.objects.none()
    serializer_class = NegotiationSerializer
    filterset_class = NegotiationFilter
    permission_classes = [IsAuthenticated]
    throttle_classes = [NegotiationRateThrottle]

    def get_service(self):
        if not hasattr(self, "_service"):
            self._service = build_negotiation_service()
        return self._service

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["clock"] = self.get_service().clock
        return context

    def _viewer_id(self, request):
        """``None`` for staff, who see every negotiation."""
        return None if request.user.is_staff else acting_user_id(request)

    def _render(
        self,
        result,
        message,
        serializer_class=NegotiationSerializer,
        many=False,
        status_code=status.HTTP_200_OK,
    ):
        if not result.success:
            return self.failure_response(result.error)
        data = serializer_class(
            result.data, many=many, context=self.get_serializer_context()
        ).data
        return self.success_response(data=data, message=message, status_code=status_code)

    # ------------------------------------------------------------------
    # collection
    # ------------------------------------------------------------------
    @schema.PLAIN_LIST
    def list(self, request):
        service = self.get_service()
        result = service.list_negotiations(self._viewer_id(request))
        if not result.success:
            return self.failure_response(result.error)
        queryset = self.filter_queryset(result.data)[
            : service.config.default_list_limit
        ]
        data = NegotiationSerializer(
            queryset, many=True, context=self.get_serializer_context()
        ).data
        return self.success_response(data=data, message="Negotiations retrieved")

    @schema.CREATE_NEGOTIATION
    def create(self, request):
        start_time = timezone.now()
        serializer = CreateNegotiationSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_input_response(serializer.errors)

        result = self.get_service().create_negotiation(
            acting_user_id=acting_user_id(request), **serializer.validated_data
        )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(f"Negotiation create request handled in {duration:.2f}ms")
        return self._render(
            result, "Negotiation created", status_code=status.HTTP_201_CREATED
        )

    def get_throttles(self):
        if self.action == "create":
            return [NegotiationCreateRateThrottle()]
        return super().get_throttles()

    # ------------------------------------------------------------------
    # single negotiation
    # ------------------------------------------------------------------
    @schema.RETRIEVE_NEGOTIATION
    def retrieve(self, request, pk=None):
        result = self.get_service().get_negotiation(pk, self._viewer_id(request))
        return self._render(
            result, "Negotiation retrieved", serializer_class=NegotiationDetailSerializer
        )

    @schema.NEGOTIATION_HISTORY
    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request, pk=None):
        result = self.get_service().get_negotiation_history(pk, self._viewer_id(request))
        return self._render(
            result,
            "Negotiation history retrieved",
            serializer_class=NegotiationHistorySerializer,
            many=True,
        )

    @schema.COUNTER_OFFER
    @action(
        detail=True,
        methods=["post"],
        url_path="counter-offer",
        throttle_classes=[NegotiationRespondRateThrottle],
    )
    def counter_offer(self, request, pk=None):
        serializer = CounterOfferSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_input_response(serializer.errors)

        result = self.get_service().create_counter_offer(
            pk, acting_user_id=acting_user_id(request), **serializer.validated_data
        )
        return self._render(result, "Counter offer submitted")

    @schema.ACCEPT_NEGOTIATION
    @action(
        detail=True,
        methods=["post"],
        throttle_classes=[NegotiationRespondRateThrottle],
    )
    def accept(self, request, pk=None):
        result = self.get_service().accept_negotiation(
            pk, acting_user_id=acting_user_id(request)
        )
        return self._render(result, "Negotiation accepted")

    @schema.REJECT_NEGOTIATION
    @action(
        detail=True,
        methods=["post"],
        throttle_classes=[NegotiationRespondRateThrottle],
    )
    def reject(self, request, pk=None):
        serializer = RejectNegotiationSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_input_response(serializer.errors)

        result = self.get_service().reject_negotiation(
            pk,
            acting_user_id=acting_user_id(request),
            reason=serializer.validated_data.get("reason"),
        )
        return self._render(result, "Negotiation rejected")

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    @schema.PLAIN_LIST
    @action(detail=False, methods=["get"], url_path=r"order/(?P<order_id>[^/.]+)")
    def order(self, request, order_id=None):
        result = self.get_service().get_order_negotiations(
            order_id, self._viewer_id(request)
        )
        return self._render(result, "Order negotiations retrieved", many=True)

    def _participant_listing(self, request, fetch, message):
        query = NegotiationListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return self.invalid_input_response(query.errors)
        result = fetch(
            acting_user_id(request),
            status=query.validated_data.get("status") or None,
            limit=query.validated_data.get("limit"),
        )
        return self._render(result, message, many=True)

    @schema.PARTICIPANT_LIST
    @action(detail=False, methods=["get"])
    def farmer(self, request):
        """Negotiations where the caller is the farmer."""
        return self._participant_listing(
            request,
            self.get_service().get_farmer_negotiations,
            "Farmer negotiations retrieved",
        )

    @schema.PARTICIPANT_LIST
    @action(detail=False, methods=["get"])
    def buyer(self, request):
        """Negotiations where the caller is the buyer."""
        return self._participant_listing(
            request,
            self.get_service().get_buyer_negotiations,
            "Buyer negotiations retrieved",
        )

    @schema.PLAIN_LIST
    @action(detail=False, methods=["get"])
    def active(self, request):
        result = self.get_service().get_active_negotiations(self._viewer_id(request))
        return self._render(result, "Active negotiations retrieved", many=True)

    @schema.PLAIN_LIST
    @action(detail=False, methods=["get"])
    def expired(self, request):
        result = self.get_service().get_expired_negotiations(self._viewer_id(request))
        return self._render(result, "Expired negotiations retrieved", many=True)

    @schema.PLAIN_LIST
    @action(detail=False, methods=["get"], url_path="expiring-soon")
    def expiring_soon(self, request):
        result = self.get_service().get_negotiations_expiring_soon(
            self._viewer_id(request)
        )
        return self._render(result, "Negotiations expiring soon retrieved", many=True)

    @schema.SEARCH_NEGOTIATIONS
    @action(detail=False, methods=["get"])
    def search(self, request):
        query = NegotiationSearchQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return self.invalid_input_response(query.errors)
        params = query.validated_data
        result = self.get_service().search_negotiations(
            params.get("q", ""),
            status=params.get("status") or None,
            farmer_id=params.get("farmer_id"),
            buyer_id=params.get("buyer_id"),
            limit=params.get("limit"),
            participant_id=self._viewer_id(request),
        )
        return self._render(result, "Search results", many=True)

    # ------------------------------------------------------------------
    # operations (staff)
    # ------------------------------------------------------------------
    @schema.NEGOTIATION_STATS
    @action(
        detail=False,
        methods=["get"],
        permission_classes=[IsAuthenticated, IsStaff],
    )
    def stats(self, request):
        query = NegotiationStatsQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return self.invalid_input_response(query.errors)
        result = self.get_service().get_negotiation_stats(
            query.validated_data["start_date"], query.validated_data["end_date"]
        )
        if not result.success:
            return self.failure_response(result.error)
        return self.success_response(
            data=NegotiationStatsSerializer(result.data).data,
            message="Negotiation statistics retrieved",
        )

    @schema.AUTO_EXPIRE
    @action(
        detail=False,
        methods=["post"],
        url_path="auto-expire",
        permission_classes=[IsAuthenticated, IsStaff],
    )
    def auto_expire(self, request):
        result = self.get_service().auto_expire_negotiations()
        if not result.success:
            return self.failure_response(result.error)
        return self.success_response(
            data=result.data,
            message=f"Expired {result.data['expired_count']} negotiations",
        )
