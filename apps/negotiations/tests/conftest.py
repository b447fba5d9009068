from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from apps.negotiations.collaborators import SettingsOrderLookup
from apps.negotiations.config import NegotiationConfig
from apps.negotiations.repository import NegotiationRepository
from apps.negotiations.services import NegotiationService
from apps.negotiations.validators import NegotiationValidator


class FakeClock:
    """Settable clock; call ``advance`` to move time forward."""

    def __init__(self, now=None):
        self.now = now or timezone.now().replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def config():
    return NegotiationConfig(
        default_expiry_hours=72,
        max_expiry_days=30,
        max_counter_offers=3,
        max_discount_percent=Decimal("20"),
        min_price_difference_percent=Decimal("1"),
        max_notes_length=500,
    )


@pytest.fixture
def validator(config):
    return NegotiationValidator(config)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository():
    return NegotiationRepository()


@pytest.fixture
def order_lookup():
    return SettingsOrderLookup({"order-1": "1000.00", "order-2": "100.00"})


@pytest.fixture
def service(repository, validator, config, order_lookup, clock):
    return NegotiationService(
        repository=repository,
        validator=validator,
        config=config,
        order_lookup=order_lookup,
        clock=clock,
    )


@pytest.fixture
def create_negotiation(service):
    """Open a negotiation through the service and return the stored row."""

    def _create(**overrides):
        params = {
            "order_id": "order-1",
            "farmer_id": "farmer-1",
            "buyer_id": "buyer-1",
            "product_id": "product-1",
            "original_price": Decimal("1000.00"),
            "proposed_price": Decimal("900.00"),
        }
        params.update(overrides)
        result = service.create_negotiation(**params)
        assert result.success, result.error
        return result.data

    return _create


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def farmer_user(db):
    User = get_user_model()
    return User.objects.create_user(username="farmer", password="testpassword123")


@pytest.fixture
def buyer_user(db):
    User = get_user_model()
    return User.objects.create_user(username="buyer", password="testpassword123")


@pytest.fixture
def outsider_user(db):
    User = get_user_model()
    return User.objects.create_user(username="outsider", password="testpassword123")


@pytest.fixture
def staff_user(db):
    User = get_user_model()
    return User.objects.create_user(
        username="staff", password="testpassword123", is_staff=True
    )
