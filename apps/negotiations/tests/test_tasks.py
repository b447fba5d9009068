from datetime import timedelta
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from apps.negotiations.models import Negotiation
from apps.negotiations.tasks import expire_negotiations


@pytest.fixture
def stale_negotiation(db):
    now = timezone.now()
    return Negotiation.objects.create(
        order_id="order-1",
        farmer_id="farmer-1",
        buyer_id="buyer-1",
        product_id="product-1",
        original_price=Decimal("100.00"),
        proposed_price=Decimal("90.00"),
        expires_at=now - timedelta(hours=1),
        created_at=now - timedelta(days=3),
        updated_at=now - timedelta(days=3),
    )


@pytest.fixture
def open_negotiation(db):
    return Negotiation.objects.create(
        order_id="order-2",
        farmer_id="farmer-1",
        buyer_id="buyer-2",
        product_id="product-1",
        original_price=Decimal("100.00"),
        proposed_price=Decimal("95.00"),
        expires_at=timezone.now() + timedelta(days=1),
    )


@pytest.mark.django_db
class TestExpireNegotiationsTask:
    def test_task_expires_stale_negotiations(self, stale_negotiation, open_negotiation):
        result = expire_negotiations.delay()

        assert result.get() == {"expired_count": 1}
        stale_negotiation.refresh_from_db()
        open_negotiation.refresh_from_db()
        assert stale_negotiation.status == "expired"
        assert open_negotiation.status == "pending"

    def test_task_is_idempotent(self, stale_negotiation):
        expire_negotiations.delay()
        assert expire_negotiations.delay().get() == {"expired_count": 0}


@pytest.mark.django_db
class TestExpireNegotiationsCommand:
    def test_command_reports_count(self, stale_negotiation):
        out = StringIO()
        call_command("expire_negotiations", stdout=out)

        assert "Expired 1 negotiations." in out.getvalue()
        stale_negotiation.refresh_from_db()
        assert stale_negotiation.status == "expired"
