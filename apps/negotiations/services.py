import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from django.core.cache import cache
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.core.utils.cache_key_manager import CacheKeyManager
from apps.core.utils.cache_manager import CacheManager
from apps.negotiations.collaborators import OrderLookup, get_order_lookup
from apps.negotiations.config import NegotiationConfig
from apps.negotiations.exceptions import (
    NegotiationError,
    NegotiationInternalError,
    NegotiationNotFound,
    NegotiationPermissionDenied,
    NegotiationValidationError,
)
from apps.negotiations.models import Negotiation, NegotiationStatus
from apps.negotiations.repository import NegotiationRepository
from apps.negotiations.utils.statuses import ACTIVE_STATUSES, TERMINAL_STATUSES
from apps.negotiations.validators import NegotiationValidator, discount_percentage

logger = logging.getLogger("negotiation_performance")


@dataclass(frozen=True)
class ServiceResult:
    """Outcome of a public service call: ``data`` on success, ``error`` otherwise."""

    success: bool
    data: Any = None
    error: Optional[NegotiationError] = None

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: NegotiationError):
        return cls(success=False, error=error)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None


class NegotiationService:
    """
    Lifecycle of a negotiation: create, counter-offer, accept, reject and
    expire, plus the read side.

    Public methods never raise. Rule, permission and concurrency failures,
    as well as unexpected errors, come back as a failed ``ServiceResult``.
    """

    def __init__(
        self,
        repository: NegotiationRepository,
        validator: NegotiationValidator,
        config: NegotiationConfig,
        order_lookup: OrderLookup,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.repository = repository
        self.validator = validator
        self.config = config
        self.order_lookup = order_lookup
        self.clock = clock

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------
    def _run(self, operation: str, func: Callable[[], Any], **context) -> ServiceResult:
        start_time = timezone.now()
        try:
            data = func()
        except NegotiationError as exc:
            logger.warning(f"{operation} failed ({exc.code}): {exc.detail} {context}")
            return ServiceResult.fail(exc)
        except DatabaseError:
            logger.exception(f"Database error during {operation} {context}")
            return ServiceResult.fail(NegotiationInternalError())
        except Exception:
            logger.exception(f"Unexpected error during {operation} {context}")
            return ServiceResult.fail(NegotiationInternalError())

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(f"{operation} completed in {duration:.2f}ms {context}")
        return ServiceResult.ok(data)

    def _load(self, negotiation_id) -> Negotiation:
        negotiation = self.repository.get(negotiation_id)
        if negotiation is None:
            raise NegotiationNotFound()
        return negotiation

    @staticmethod
    def _authorize(negotiation: Negotiation, acting_user_id: str):
        if not negotiation.is_participant(acting_user_id):
            raise NegotiationPermissionDenied()

    @staticmethod
    def _require_open(negotiation: Negotiation, now: datetime, action: str):
        if negotiation.status not in ACTIVE_STATUSES:
            raise NegotiationValidationError.single(
                "status",
                f"Can only {action} pending or counter-offered negotiations",
                "invalid_status",
            )
        if negotiation.is_past_expiry(now):
            raise NegotiationValidationError.single(
                "expires_at",
                f"Cannot {action} an expired negotiation",
                "negotiation_expired",
            )

    def _after_write(self):
        transaction.on_commit(self._invalidate_stats)

    @staticmethod
    def _invalidate_stats():
        # The write is already committed; a cache outage only leaves stats stale.
        try:
            CacheManager.bump_version("negotiation", "stats_version")
        except Exception:
            logger.exception("Failed to invalidate negotiation stats cache")

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def create_negotiation(
        self,
        *,
        order_id: str,
        farmer_id: str,
        buyer_id: str,
        product_id: str,
        proposed_price: Decimal,
        original_price: Optional[Decimal] = None,
        acting_user_id: Optional[str] = None,
        notes: Optional[str] = None,
        farmer_notes: Optional[str] = None,
        buyer_notes: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> ServiceResult:
        logger.info(
            f"Business event create_negotiation: order={order_id} farmer={farmer_id} "
            f"buyer={buyer_id} actor={acting_user_id}"
        )

        def create():
            now = self.clock()
            if acting_user_id is not None and str(acting_user_id) not in (
                farmer_id,
                buyer_id,
            ):
                raise NegotiationPermissionDenied(
                    "You can only open a negotiation you take part in."
                )

            price = original_price
            if price is None:
                price = self.order_lookup.get_listing_price(order_id)
                if price is None:
                    raise NegotiationNotFound(f"Order {order_id} not found.")

            f_notes, b_notes = farmer_notes, buyer_notes
            if notes:
                if acting_user_id is not None and str(acting_user_id) == buyer_id:
                    b_notes = notes
                else:
                    f_notes = notes

            payload = self.validator.validate_create(
                order_id=order_id,
                farmer_id=farmer_id,
                buyer_id=buyer_id,
                product_id=product_id,
                original_price=price,
                proposed_price=proposed_price,
                farmer_notes=f_notes,
                buyer_notes=b_notes,
                expires_at=expires_at,
                now=now,
            )
            negotiation = self.repository.create(
                payload, actor_id=str(acting_user_id or farmer_id), now=now
            )
            self._after_write()
            return negotiation

        return self._run(
            "create_negotiation", create, order_id=order_id, actor=acting_user_id
        )

    def create_counter_offer(
        self,
        negotiation_id,
        *,
        proposed_price: Decimal,
        acting_user_id: str,
        notes: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> ServiceResult:
        logger.info(
            f"Business event create_counter_offer: negotiation={negotiation_id} "
            f"actor={acting_user_id} price={proposed_price}"
        )

        def counter():
            now = self.clock()
            negotiation = self._load(negotiation_id)
            self._authorize(negotiation, acting_user_id)
            self._require_open(negotiation, now, "counter-offer")
            self.validator.validate_status_transition(
                negotiation.status, NegotiationStatus.COUNTER_OFFERED
            )
            self.validator.validate_counter_offer(
                current_counter_offer_count=negotiation.counter_offer_count,
                original_price=negotiation.original_price,
                proposed_price=proposed_price,
                notes=notes,
                expires_at=expires_at,
                now=now,
            )

            changes = {
                "proposed_price": proposed_price,
                "status": NegotiationStatus.COUNTER_OFFERED,
                "counter_offer_count": negotiation.counter_offer_count + 1,
                "expires_at": expires_at
                or now + timedelta(hours=self.config.default_expiry_hours),
            }
            if notes is not None:
                notes_field = (
                    "farmer_notes"
                    if str(acting_user_id) == negotiation.farmer_id
                    else "buyer_notes"
                )
                changes[notes_field] = notes

            updated = self.repository.compare_and_swap(
                negotiation,
                changes,
                expected_statuses=ACTIVE_STATUSES,
                history={
                    "action": "counter_offered",
                    "actor_id": str(acting_user_id),
                    "now": now,
                    "notes": notes,
                },
            )
            self._after_write()
            return updated

        return self._run(
            "create_counter_offer",
            counter,
            negotiation_id=negotiation_id,
            actor=acting_user_id,
        )

    def accept_negotiation(self, negotiation_id, *, acting_user_id: str) -> ServiceResult:
        logger.info(
            f"Business event accept_negotiation: negotiation={negotiation_id} actor={acting_user_id}"
        )

        def accept():
            now = self.clock()
            negotiation = self._load(negotiation_id)
            self._authorize(negotiation, acting_user_id)
            self._require_open(negotiation, now, "accept")
            self.validator.validate_status_transition(
                negotiation.status, NegotiationStatus.ACCEPTED
            )
            self.validator.validate_acceptance(
                negotiation.proposed_price, negotiation.original_price
            )
            updated = self.repository.compare_and_swap(
                negotiation,
                {
                    "final_price": negotiation.proposed_price,
                    "status": NegotiationStatus.ACCEPTED,
                },
                expected_statuses=ACTIVE_STATUSES,
                history={"action": "accepted", "actor_id": str(acting_user_id), "now": now},
            )
            self._after_write()
            return updated

        return self._run(
            "accept_negotiation", accept, negotiation_id=negotiation_id, actor=acting_user_id
        )

    def reject_negotiation(
        self, negotiation_id, *, acting_user_id: str, reason: Optional[str] = None
    ) -> ServiceResult:
        logger.info(
            f"Business event reject_negotiation: negotiation={negotiation_id} actor={acting_user_id}"
        )

        def reject():
            now = self.clock()
            negotiation = self._load(negotiation_id)
            self._authorize(negotiation, acting_user_id)
            self._require_open(negotiation, now, "reject")
            self.validator.validate_status_transition(
                negotiation.status, NegotiationStatus.REJECTED
            )
            self.validator.validate_notes("reason", reason)
            updated = self.repository.compare_and_swap(
                negotiation,
                {"status": NegotiationStatus.REJECTED},
                expected_statuses=ACTIVE_STATUSES,
                history={
                    "action": "rejected",
                    "actor_id": str(acting_user_id),
                    "now": now,
                    "notes": reason,
                },
            )
            self._after_write()
            return updated

        return self._run(
            "reject_negotiation", reject, negotiation_id=negotiation_id, actor=acting_user_id
        )

    def auto_expire_negotiations(self) -> ServiceResult:
        """
        Expire every active negotiation past its ``expires_at``.

        Each record is flipped with its own conditional update, so a record
        accepted or rejected after it was listed is left alone. A failure on
        one record is logged and the sweep carries on.
        """

        def sweep():
            now = self.clock()
            expired_count = 0
            for negotiation in self.repository.expired(now):
                try:
                    if self.repository.expire_if_stale(negotiation.pk, now):
                        expired_count += 1
                except Exception:
                    logger.exception(
                        f"Failed to expire negotiation {negotiation.pk}; skipping"
                    )
            if expired_count:
                self._after_write()
            logger.info(f"Auto-expired {expired_count} negotiations")
            return {"expired_count": expired_count}

        return self._run("auto_expire_negotiations", sweep)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_negotiation(self, negotiation_id, acting_user_id: Optional[str] = None) -> ServiceResult:
        """``acting_user_id=None`` skips the participant check (staff and internal callers)."""

        def fetch():
            negotiation = self._load(negotiation_id)
            if acting_user_id is not None:
                self._authorize(negotiation, acting_user_id)
            return negotiation

        return self._run("get_negotiation", fetch, negotiation_id=negotiation_id)

    def get_negotiation_history(self, negotiation_id, acting_user_id: Optional[str] = None) -> ServiceResult:
        def fetch():
            negotiation = self._load(negotiation_id)
            if acting_user_id is not None:
                self._authorize(negotiation, acting_user_id)
            return self.repository.history_for(negotiation)

        return self._run("get_negotiation_history", fetch, negotiation_id=negotiation_id)

    def list_negotiations(self, participant_id: Optional[str] = None) -> ServiceResult:
        """Unevaluated queryset so the view can apply filters and pagination."""
        return self._run(
            "list_negotiations", lambda: self.repository.visible_to(participant_id)
        )

    def get_order_negotiations(self, order_id: str, acting_user_id: Optional[str] = None) -> ServiceResult:
        def fetch():
            if not order_id:
                raise NegotiationValidationError.single(
                    "order_id", "Order ID is required", "required_field"
                )
            negotiations = self.repository.by_order(order_id)
            if acting_user_id is not None:
                negotiations = [n for n in negotiations if n.is_participant(acting_user_id)]
            return negotiations

        return self._run("get_order_negotiations", fetch, order_id=order_id)

    def get_farmer_negotiations(
        self, farmer_id: str, status: Optional[str] = None, limit: Optional[int] = None
    ) -> ServiceResult:
        def fetch():
            self.validator.validate_status_filter(status)
            return self.repository.by_farmer(
                farmer_id, status=status, limit=limit or self.config.default_list_limit
            )

        return self._run("get_farmer_negotiations", fetch, farmer_id=farmer_id)

    def get_buyer_negotiations(
        self, buyer_id: str, status: Optional[str] = None, limit: Optional[int] = None
    ) -> ServiceResult:
        def fetch():
            self.validator.validate_status_filter(status)
            return self.repository.by_buyer(
                buyer_id, status=status, limit=limit or self.config.default_list_limit
            )

        return self._run("get_buyer_negotiations", fetch, buyer_id=buyer_id)

    def get_active_negotiations(
        self, participant_id: Optional[str] = None, limit: Optional[int] = None
    ) -> ServiceResult:
        return self._run(
            "get_active_negotiations",
            lambda: self.repository.active(
                limit=limit or self.config.active_list_limit,
                participant_id=participant_id,
            ),
        )

    def get_expired_negotiations(self, participant_id: Optional[str] = None) -> ServiceResult:
        """Active negotiations already past expiry that the sweeper has not reached yet."""
        return self._run(
            "get_expired_negotiations",
            lambda: self.repository.expired(self.clock(), participant_id=participant_id),
        )

    def get_negotiations_expiring_soon(self, participant_id: Optional[str] = None) -> ServiceResult:
        def fetch():
            now = self.clock()
            return self.repository.expiring_between(
                now,
                now + timedelta(hours=self.config.expiring_soon_hours),
                participant_id=participant_id,
            )

        return self._run("get_negotiations_expiring_soon", fetch)

    def search_negotiations(
        self,
        query: str,
        *,
        status: Optional[str] = None,
        farmer_id: Optional[str] = None,
        buyer_id: Optional[str] = None,
        limit: Optional[int] = None,
        participant_id: Optional[str] = None,
    ) -> ServiceResult:
        def search():
            effective_limit = self.validator.validate_search(query, status, limit)
            return self.repository.search(
                query,
                status=status,
                farmer_id=farmer_id,
                buyer_id=buyer_id,
                limit=effective_limit,
                participant_id=participant_id,
            )

        return self._run("search_negotiations", search, query=query)

    def get_negotiation_stats(self, start: datetime, end: datetime) -> ServiceResult:
        def stats():
            self.validator.validate_date_range(start, end)
            version = CacheManager.get_version("negotiation", "stats_version")
            cache_key = CacheKeyManager.make_key(
                "negotiation",
                "stats",
                version=version,
                start=start.isoformat(),
                end=end.isoformat(),
            )
            cached = cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Negotiation stats served from cache: {cache_key}")
                return cached

            result = self._compute_stats(start, end)
            cache.set(cache_key, result, self.config.stats_cache_timeout)
            return result

        return self._run("get_negotiation_stats", stats, start=start, end=end)

    def _compute_stats(self, start: datetime, end: datetime) -> Dict[str, Any]:
        rows = self.repository.created_between(start, end).values(
            "status",
            "original_price",
            "final_price",
            "counter_offer_count",
            "created_at",
            "updated_at",
        )

        counts = {status: 0 for status in NegotiationStatus.values}
        discounts: List[Decimal] = []
        resolution_hours: List[float] = []
        total_rounds = 0

        for row in rows:
            counts[row["status"]] += 1
            total_rounds += row["counter_offer_count"] + 1
            if row["status"] == NegotiationStatus.ACCEPTED and row["final_price"]:
                discounts.append(
                    discount_percentage(row["original_price"], row["final_price"])
                )
            if row["status"] in TERMINAL_STATUSES:
                resolution_hours.append(
                    (row["updated_at"] - row["created_at"]).total_seconds() / 3600
                )

        total = sum(counts.values())
        return {
            "total_negotiations": total,
            "accepted": counts[NegotiationStatus.ACCEPTED],
            "rejected": counts[NegotiationStatus.REJECTED],
            "pending": counts[NegotiationStatus.PENDING]
            + counts[NegotiationStatus.COUNTER_OFFERED],
            "expired": counts[NegotiationStatus.EXPIRED],
            "average_discount_percentage": round(
                float(sum(discounts) / len(discounts)), 2
            )
            if discounts
            else 0,
            "average_rounds": round(total_rounds / total, 2) if total else 0,
            "average_resolution_hours": round(
                sum(resolution_hours) / len(resolution_hours), 2
            )
            if resolution_hours
            else 0,
        }


def build_negotiation_service(**overrides) -> NegotiationService:
    """
    Wire a ``NegotiationService`` from Django settings.

    Keyword overrides replace individual collaborators (``repository``,
    ``validator``, ``config``, ``order_lookup``, ``clock``).
    """
    config = overrides.pop("config", None) or NegotiationConfig.from_settings()
    return NegotiationService(
        repository=overrides.pop("repository", None) or NegotiationRepository(),
        validator=overrides.pop("validator", None) or NegotiationValidator(config),
        config=config,
        order_lookup=overrides.pop("order_lookup", None) or get_order_lookup(),
        clock=overrides.pop("clock", None) or timezone.now,
    )

