from django.urls import include, path
from rest_framework.routers import DefaultRouter

from apps.negotiations.views import NegotiationViewSet

router = DefaultRouter()
router.register(r"negotiations", NegotiationViewSet, basename="negotiation")

urlpatterns = [
    path("", include(router.urls)),
]

"""
This configuration provides the following endpoints (mounted under /api/v1/):

Lifecycle:
1. POST /negotiations/
   - Open a negotiation
   - Body: {"order_id", "farmer_id", "buyer_id", "product_id",
            "proposed_price", "original_price"?, "notes"?, "expires_at"?}
2. POST /negotiations/{id}/counter-offer/
   - Body: {"proposed_price": 950.00, "notes"?, "expires_at"?}
3. POST /negotiations/{id}/accept/
4. POST /negotiations/{id}/reject/
   - Body: {"reason"?}

Reads (participants see their own negotiations, staff see all):
5. GET /negotiations/?status=&order_id=&product_id=&created_after=&created_before=
6. GET /negotiations/{id}/ and /negotiations/{id}/history/
7. GET /negotiations/order/{order_id}/
8. GET /negotiations/farmer/?status=&limit= and /negotiations/buyer/?status=&limit=
9. GET /negotiations/active/, /negotiations/expired/, /negotiations/expiring-soon/
10. GET /negotiations/search/?q=&status=&limit=

Staff:
11. GET /negotiations/stats/?start_date=&end_date=
12. POST /negotiations/auto-expire/
"""
