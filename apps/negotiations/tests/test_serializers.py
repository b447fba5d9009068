from datetime import timedelta
from decimal import Decimal

import pytest

from apps.negotiations.models import Negotiation
from apps.negotiations.serializers import NegotiationSerializer


@pytest.fixture
def negotiation(clock):
    return Negotiation(
        order_id="order-1",
        farmer_id="farmer-1",
        buyer_id="buyer-1",
        product_id="product-1",
        original_price=Decimal("1000.00"),
        proposed_price=Decimal("950.00"),
        expires_at=clock.now + timedelta(hours=1),
    )


def serialize(negotiation, clock):
    return NegotiationSerializer(negotiation, context={"clock": clock}).data


class TestNegotiationSerializer:
    def test_time_remaining_follows_clock(self, negotiation, clock):
        assert serialize(negotiation, clock)["time_remaining"] == "1 hours remaining"

        clock.advance(minutes=1)
        assert serialize(negotiation, clock)["time_remaining"] == "59 minutes remaining"

        clock.advance(hours=1)
        assert serialize(negotiation, clock)["time_remaining"] == "Expired"

    def test_time_remaining_in_days(self, negotiation, clock):
        negotiation.expires_at = clock.now + timedelta(days=2, hours=3)
        assert serialize(negotiation, clock)["time_remaining"] == "2 days remaining"

    def test_no_time_remaining_once_terminal(self, negotiation, clock):
        negotiation.status = "accepted"
        assert serialize(negotiation, clock)["time_remaining"] is None

    def test_discount_percentage(self, negotiation, clock):
        assert serialize(negotiation, clock)["discount_percentage"] == 5.0

        negotiation.final_price = Decimal("900.00")
        assert serialize(negotiation, clock)["discount_percentage"] == 10.0
