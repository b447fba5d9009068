from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from apps.negotiations.config import NegotiationConfig
from apps.negotiations.models import Negotiation, NegotiationHistory
from apps.negotiations.services import build_negotiation_service


@pytest.mark.django_db
class TestCreateNegotiation:
    def test_creates_pending_negotiation(self, service):
        result = service.create_negotiation(
            order_id="order-1",
            farmer_id="farmer-1",
            buyer_id="buyer-1",
            product_id="product-1",
            original_price=Decimal("1000.00"),
            proposed_price=Decimal("900.00"),
            acting_user_id="buyer-1",
            notes="Bulk order, can pick up",
        )

        assert result.success
        negotiation = result.data
        assert negotiation.status == "pending"
        assert negotiation.counter_offer_count == 0
        assert negotiation.version == 1
        assert negotiation.buyer_notes == "Bulk order, can pick up"
        assert negotiation.farmer_notes == ""
        assert negotiation.last_action_by == "buyer-1"
        assert negotiation.history.get().action == "created"

    def test_default_expiry(self, service, clock, create_negotiation):
        negotiation = create_negotiation()
        assert negotiation.expires_at == clock.now + timedelta(hours=72)
        assert negotiation.created_at == clock.now

    def test_original_price_seeded_from_order(self, service):
        result = service.create_negotiation(
            order_id="order-2",
            farmer_id="farmer-1",
            buyer_id="buyer-1",
            product_id="product-1",
            proposed_price=Decimal("90.00"),
        )
        assert result.success
        assert result.data.original_price == Decimal("100.00")

    def test_unknown_order_without_price(self, service):
        result = service.create_negotiation(
            order_id="missing",
            farmer_id="farmer-1",
            buyer_id="buyer-1",
            product_id="product-1",
            proposed_price=Decimal("90.00"),
        )
        assert not result.success
        assert result.error_code == "not_found"
        assert Negotiation.objects.count() == 0

    def test_discount_bound(self, service):
        common = {
            "order_id": "order-2",
            "farmer_id": "farmer-1",
            "buyer_id": "buyer-1",
            "product_id": "product-1",
            "original_price": Decimal("100"),
        }
        rejected = service.create_negotiation(proposed_price=Decimal("79"), **common)
        accepted = service.create_negotiation(proposed_price=Decimal("81"), **common)

        assert not rejected.success
        assert rejected.error_code == "validation_error"
        assert accepted.success

    def test_same_party_rejected(self, service):
        result = service.create_negotiation(
            order_id="order-1",
            farmer_id="user-1",
            buyer_id="user-1",
            product_id="product-1",
            original_price=Decimal("100"),
            proposed_price=Decimal("90"),
        )
        assert not result.success
        assert result.error_code == "validation_error"
        assert result.error.errors[0]["code"] == "invalid_relationship"

    def test_outsider_cannot_open_for_others(self, service):
        result = service.create_negotiation(
            order_id="order-1",
            farmer_id="farmer-1",
            buyer_id="buyer-1",
            product_id="product-1",
            original_price=Decimal("100"),
            proposed_price=Decimal("90"),
            acting_user_id="someone-else",
        )
        assert result.error_code == "permission_denied"


@pytest.mark.django_db
class TestCounterOffer:
    def test_counter_offer_updates_record(self, service, clock, create_negotiation):
        negotiation = create_negotiation()
        clock.advance(hours=1)

        result = service.create_counter_offer(
            negotiation.pk,
            proposed_price=Decimal("950.00"),
            acting_user_id="farmer-1",
            notes="Best I can do",
        )

        assert result.success
        updated = result.data
        assert updated.status == "counter_offered"
        assert updated.counter_offer_count == 1
        assert updated.proposed_price == Decimal("950.00")
        assert updated.farmer_notes == "Best I can do"
        assert updated.buyer_notes == ""
        assert updated.expires_at == clock.now + timedelta(hours=72)
        assert updated.updated_at == clock.now
        assert updated.version == 2

    def test_ceiling(self, service, create_negotiation):
        negotiation = create_negotiation()
        prices = ["950", "920", "940"]
        for index, price in enumerate(prices):
            actor = "farmer-1" if index % 2 == 0 else "buyer-1"
            result = service.create_counter_offer(
                negotiation.pk, proposed_price=Decimal(price), acting_user_id=actor
            )
            assert result.success, result.error

        fourth = service.create_counter_offer(
            negotiation.pk, proposed_price=Decimal("930"), acting_user_id="buyer-1"
        )
        assert not fourth.success
        assert fourth.error_code == "validation_error"
        assert Negotiation.objects.get(pk=negotiation.pk).counter_offer_count == 3

    def test_same_party_may_counter_repeatedly(self, service, create_negotiation):
        negotiation = create_negotiation()
        for price in ("950", "960"):
            result = service.create_counter_offer(
                negotiation.pk, proposed_price=Decimal(price), acting_user_id="buyer-1"
            )
            assert result.success

    def test_not_found(self, service):
        result = service.create_counter_offer(
            "5a1f3c2e-0000-4000-8000-000000000000",
            proposed_price=Decimal("950"),
            acting_user_id="farmer-1",
        )
        assert result.error_code == "not_found"

    def test_outsider_denied(self, service, create_negotiation):
        negotiation = create_negotiation()
        result = service.create_counter_offer(
            negotiation.pk, proposed_price=Decimal("950"), acting_user_id="intruder"
        )
        assert result.error_code == "permission_denied"

    def test_past_expiry(self, service, clock, create_negotiation):
        negotiation = create_negotiation(expires_at=clock.now + timedelta(hours=1))
        clock.advance(hours=2)
        result = service.create_counter_offer(
            negotiation.pk, proposed_price=Decimal("950"), acting_user_id="farmer-1"
        )
        assert result.error_code == "validation_error"
        assert result.error.errors[0]["code"] == "negotiation_expired"


@pytest.mark.django_db
class TestAcceptAndReject:
    def test_accept_sets_final_price(self, service, create_negotiation):
        negotiation = create_negotiation()
        result = service.accept_negotiation(negotiation.pk, acting_user_id="farmer-1")

        assert result.success
        assert result.data.status == "accepted"
        assert result.data.final_price == Decimal("900.00")

    def test_reject(self, service, create_negotiation):
        negotiation = create_negotiation()
        result = service.reject_negotiation(
            negotiation.pk, acting_user_id="buyer-1", reason="Found another seller"
        )

        assert result.success
        assert result.data.status == "rejected"
        assert result.data.final_price is None
        history = result.data.history.get(action="rejected")
        assert history.notes == "Found another seller"
        assert history.from_status == "pending"

    def test_terminal_records_are_frozen(self, service, create_negotiation):
        negotiation = create_negotiation()
        service.reject_negotiation(negotiation.pk, acting_user_id="buyer-1")
        snapshot = Negotiation.objects.get(pk=negotiation.pk)

        results = [
            service.accept_negotiation(negotiation.pk, acting_user_id="farmer-1"),
            service.reject_negotiation(negotiation.pk, acting_user_id="farmer-1"),
            service.create_counter_offer(
                negotiation.pk, proposed_price=Decimal("950"), acting_user_id="farmer-1"
            ),
        ]

        assert all(r.error_code == "validation_error" for r in results)
        after = Negotiation.objects.get(pk=negotiation.pk)
        assert after.version == snapshot.version
        assert after.status == "rejected"

    def test_expired_record_cannot_be_accepted_or_rejected(
        self, service, clock, create_negotiation
    ):
        negotiation = create_negotiation(expires_at=clock.now + timedelta(minutes=5))
        clock.advance(minutes=10)

        accept = service.accept_negotiation(negotiation.pk, acting_user_id="farmer-1")
        reject = service.reject_negotiation(negotiation.pk, acting_user_id="farmer-1")

        assert accept.error_code == "validation_error"
        assert reject.error_code == "validation_error"

    def test_outsider_cannot_accept(self, service, create_negotiation):
        negotiation = create_negotiation()
        result = service.accept_negotiation(negotiation.pk, acting_user_id="intruder")
        assert result.error_code == "permission_denied"
        assert Negotiation.objects.get(pk=negotiation.pk).status == "pending"


@pytest.mark.django_db
class TestConcurrency:
    def test_accept_and_reject_race(self, service, repository, create_negotiation):
        """Both calls read the same snapshot; only the first write lands."""
        negotiation = create_negotiation()
        stale = Negotiation.objects.get(pk=negotiation.pk)

        accept = service.accept_negotiation(negotiation.pk, acting_user_id="farmer-1")
        with patch.object(repository, "get", return_value=stale):
            reject = service.reject_negotiation(negotiation.pk, acting_user_id="buyer-1")

        assert accept.success
        assert not reject.success
        assert reject.error_code == "conflict"
        assert reject.error.status_code == 409
        current = Negotiation.objects.get(pk=negotiation.pk)
        assert current.status == "accepted"
        assert current.history.filter(action="rejected").count() == 0

    def test_sweep_does_not_override_late_accept(
        self, service, repository, clock, create_negotiation
    ):
        negotiation = create_negotiation(expires_at=clock.now + timedelta(minutes=5))
        service.accept_negotiation(negotiation.pk, acting_user_id="farmer-1")
        clock.advance(minutes=10)

        assert repository.expire_if_stale(negotiation.pk, clock.now) is False
        assert Negotiation.objects.get(pk=negotiation.pk).status == "accepted"

    def test_sweep_skips_record_accepted_after_listing(
        self, service, repository, clock, create_negotiation
    ):
        negotiation = create_negotiation(expires_at=clock.now + timedelta(minutes=5))
        clock.advance(minutes=10)
        listed = repository.expired(clock.now)
        Negotiation.objects.filter(pk=negotiation.pk).update(status="accepted")

        with patch.object(repository, "expired", return_value=listed):
            result = service.auto_expire_negotiations()

        assert result.data == {"expired_count": 0}
        assert Negotiation.objects.get(pk=negotiation.pk).status == "accepted"


@pytest.mark.django_db
class TestAutoExpire:
    def test_expires_stale_records_once(self, service, clock, create_negotiation):
        stale = create_negotiation(expires_at=clock.now + timedelta(hours=1))
        fresh = create_negotiation(order_id="order-2", original_price=Decimal("100"), proposed_price=Decimal("95"))
        clock.advance(hours=2)

        first = service.auto_expire_negotiations()
        second = service.auto_expire_negotiations()

        assert first.data == {"expired_count": 1}
        assert second.data == {"expired_count": 0}
        assert Negotiation.objects.get(pk=stale.pk).status == "expired"
        assert Negotiation.objects.get(pk=fresh.pk).status == "pending"
        history = NegotiationHistory.objects.get(negotiation=stale, action="expired")
        assert history.actor_id == "system"

    def test_one_bad_record_does_not_abort_sweep(
        self, service, repository, clock, create_negotiation
    ):
        first = create_negotiation(expires_at=clock.now + timedelta(minutes=1))
        second = create_negotiation(
            order_id="order-2",
            original_price=Decimal("100"),
            proposed_price=Decimal("95"),
            expires_at=clock.now + timedelta(minutes=2),
        )
        clock.advance(hours=1)
        real_expire = repository.expire_if_stale

        def flaky(negotiation_id, now):
            if negotiation_id == first.pk:
                raise DatabaseError("row locked")
            return real_expire(negotiation_id, now)

        with patch.object(repository, "expire_if_stale", side_effect=flaky):
            result = service.auto_expire_negotiations()

        assert result.success
        assert result.data == {"expired_count": 1}
        assert Negotiation.objects.get(pk=second.pk).status == "expired"
        assert Negotiation.objects.get(pk=first.pk).status == "pending"

    def test_counter_offered_records_expire_too(self, service, clock, create_negotiation):
        negotiation = create_negotiation()
        service.create_counter_offer(
            negotiation.pk,
            proposed_price=Decimal("950"),
            acting_user_id="buyer-1",
            expires_at=clock.now + timedelta(hours=1),
        )
        clock.advance(hours=2)

        assert service.auto_expire_negotiations().data == {"expired_count": 1}
        expired = Negotiation.objects.get(pk=negotiation.pk)
        assert expired.status == "expired"
        assert expired.history.get(action="expired").from_status == "counter_offered"


@pytest.mark.django_db
class TestReads:
    def test_participant_listings(self, service, create_negotiation):
        create_negotiation()
        create_negotiation(order_id="order-2", buyer_id="buyer-2")
        other = create_negotiation(farmer_id="farmer-2")
        service.reject_negotiation(other.pk, acting_user_id="farmer-2")

        assert len(service.get_farmer_negotiations("farmer-1").data) == 2
        assert len(service.get_buyer_negotiations("buyer-1").data) == 2
        rejected = service.get_buyer_negotiations("buyer-1", status="rejected").data
        assert [n.pk for n in rejected] == [other.pk]
        assert service.get_farmer_negotiations("farmer-1", status="bogus").error_code == (
            "validation_error"
        )

    def test_order_negotiations_filtered_for_viewer(self, service, create_negotiation):
        create_negotiation()
        create_negotiation(buyer_id="buyer-2")

        assert len(service.get_order_negotiations("order-1").data) == 2
        assert len(service.get_order_negotiations("order-1", "buyer-2").data) == 1

    def test_active_expired_and_expiring_soon(self, service, clock, create_negotiation):
        soon = create_negotiation(expires_at=clock.now + timedelta(hours=12))
        later = create_negotiation(order_id="order-2", original_price=Decimal("100"), proposed_price=Decimal("95"))
        overdue = create_negotiation(expires_at=clock.now + timedelta(minutes=1))
        clock.advance(minutes=5)

        active_ids = {n.pk for n in service.get_active_negotiations().data}
        assert active_ids == {soon.pk, later.pk, overdue.pk}
        assert [n.pk for n in service.get_expired_negotiations().data] == [overdue.pk]
        assert [n.pk for n in service.get_negotiations_expiring_soon().data] == [soon.pk]

    def test_search(self, service, create_negotiation):
        create_negotiation(notes="Organic tomatoes, grade A", acting_user_id="farmer-1")
        create_negotiation(notes="Potatoes", acting_user_id="buyer-1")

        result = service.search_negotiations("TOMATO")
        assert result.success
        assert len(result.data) == 1

        assert service.search_negotiations("t").error_code == "validation_error"
        assert service.search_negotiations("tomato", participant_id="nobody").data == []

    def test_get_negotiation_requires_participant(self, service, create_negotiation):
        negotiation = create_negotiation()
        assert service.get_negotiation(negotiation.pk, "buyer-1").success
        assert service.get_negotiation(negotiation.pk, "intruder").error_code == (
            "permission_denied"
        )
        assert service.get_negotiation("not-a-uuid").error_code == "not_found"


@pytest.mark.django_db
class TestStats:
    def test_stats(self, service, clock, create_negotiation):
        start = clock.now - timedelta(minutes=1)
        accepted = create_negotiation()
        service.create_counter_offer(
            accepted.pk, proposed_price=Decimal("950"), acting_user_id="buyer-1"
        )
        clock.advance(hours=2)
        service.accept_negotiation(accepted.pk, acting_user_id="farmer-1")
        rejected = create_negotiation(order_id="order-2", original_price=Decimal("100"), proposed_price=Decimal("90"))
        clock.advance(hours=2)
        service.reject_negotiation(rejected.pk, acting_user_id="farmer-1")
        create_negotiation(order_id="order-3")

        result = service.get_negotiation_stats(start, clock.now + timedelta(minutes=1))

        assert result.success
        stats = result.data
        assert stats["total_negotiations"] == 3
        assert stats["accepted"] == 1
        assert stats["rejected"] == 1
        assert stats["pending"] == 1
        assert stats["expired"] == 0
        assert stats["average_discount_percentage"] == 5.0
        assert stats["average_rounds"] == round(4 / 3, 2)
        assert stats["average_resolution_hours"] == 2.0

    def test_stats_cache_invalidated_by_writes(
        self, service, clock, create_negotiation, django_capture_on_commit_callbacks
    ):
        start, end = clock.now - timedelta(hours=1), clock.now + timedelta(hours=1)
        create_negotiation()
        assert service.get_negotiation_stats(start, end).data["total_negotiations"] == 1

        with django_capture_on_commit_callbacks(execute=True):
            create_negotiation(order_id="order-2", original_price=Decimal("100"), proposed_price=Decimal("90"))
        assert service.get_negotiation_stats(start, end).data["total_negotiations"] == 2

    def test_cache_outage_does_not_fail_committed_write(
        self, service, create_negotiation, django_capture_on_commit_callbacks
    ):
        negotiation = create_negotiation()

        with patch(
            "apps.core.utils.cache_manager.cache.incr",
            side_effect=ConnectionError("cache down"),
        ), django_capture_on_commit_callbacks(execute=True) as callbacks:
            result = service.create_counter_offer(
                negotiation.pk, proposed_price=Decimal("950"), acting_user_id="buyer-1"
            )

        assert len(callbacks) == 1
        assert result.success
        stored = Negotiation.objects.get(pk=negotiation.pk)
        assert stored.status == "counter_offered"
        assert stored.counter_offer_count == 1

    def test_invalid_range(self, service, clock):
        result = service.get_negotiation_stats(clock.now, clock.now - timedelta(days=1))
        assert result.error_code == "validation_error"


@pytest.mark.django_db
class TestErrorNormalization:
    def test_database_failure_becomes_internal_error(self, service, repository):
        with patch.object(repository, "get", side_effect=DatabaseError("down")):
            result = service.accept_negotiation("anything", acting_user_id="farmer-1")
        assert not result.success
        assert result.error_code == "internal_error"
        assert result.error.status_code == 500


@pytest.mark.django_db
def test_end_to_end_negotiation(service, clock):
    created = service.create_negotiation(
        order_id="order-1",
        farmer_id="F",
        buyer_id="B",
        product_id="product-1",
        original_price=Decimal("1000"),
        proposed_price=Decimal("900"),
    )
    assert created.success
    assert created.data.status == "pending"
    assert created.data.counter_offer_count == 0
    clock.advance(minutes=1)

    countered = service.create_counter_offer(
        created.data.pk, proposed_price=Decimal("950"), acting_user_id="B"
    )
    assert countered.data.status == "counter_offered"
    assert countered.data.counter_offer_count == 1
    clock.advance(minutes=1)

    accepted = service.accept_negotiation(created.data.pk, acting_user_id="F")
    assert accepted.data.status == "accepted"
    assert accepted.data.final_price == Decimal("950")

    late = service.create_counter_offer(
        created.data.pk, proposed_price=Decimal("960"), acting_user_id="B"
    )
    assert late.error_code == "validation_error"
    assert "only counter-offer pending or counter-offered" in str(late.error.detail)

    actions = [h.action for h in created.data.history.order_by("created_at")]
    assert actions == ["created", "counter_offered", "accepted"]


@pytest.mark.django_db
def test_build_negotiation_service_reads_settings(settings):
    settings.NEGOTIATION_SETTINGS = {
        **settings.NEGOTIATION_SETTINGS,
        "MAX_COUNTER_OFFERS": 7,
        "MAX_DISCOUNT_PERCENT": 15,
    }
    service = build_negotiation_service()
    assert service.config.max_counter_offers == 7
    assert service.config.max_discount_percent == Decimal("15")
    assert service.order_lookup.get_listing_price("order-priced") == Decimal("1000.00")


def test_config_overrides():
    config = NegotiationConfig.from_settings({"MAX_NOTES_LENGTH": 10})
    assert config.max_notes_length == 10
