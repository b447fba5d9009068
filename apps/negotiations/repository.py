import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F, Q, QuerySet

from apps.negotiations.exceptions import NegotiationConflict
from apps.negotiations.models import (
    Negotiation,
    NegotiationHistory,
    NegotiationStatus,
)
from apps.negotiations.utils.statuses import ACTIVE_STATUSES

logger = logging.getLogger("negotiation_performance")

SYSTEM_ACTOR = "system"


class NegotiationRepository:
    """
    Persistence for negotiations and their history.

    Every write is a conditional update guarded by ``version`` (and the
    expected statuses), so two writers that read the same snapshot can never
    both succeed.
    """

    def __init__(self, queryset: Optional[QuerySet] = None):
        self._queryset = queryset

    @property
    def queryset(self) -> QuerySet:
        if self._queryset is not None:
            return self._queryset.all()
        return Negotiation.objects.all()

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def create(self, payload: Dict, actor_id: str, now: datetime) -> Negotiation:
        with transaction.atomic():
            negotiation = Negotiation.objects.create(
                **payload,
                last_action_by=actor_id,
                created_at=now,
                updated_at=now,
            )
            self._record(
                negotiation,
                action="created",
                actor_id=actor_id,
                from_status="",
                now=now,
                notes=payload.get("farmer_notes") or payload.get("buyer_notes") or "",
            )
        return negotiation

    def compare_and_swap(
        self,
        negotiation: Negotiation,
        changes: Dict,
        expected_statuses: Iterable[str],
        history: Dict,
    ) -> Negotiation:
        """
        Apply ``changes`` only if the row still has the version and one of
        the statuses we read it with.

        ``history`` holds ``action``, ``actor_id``, ``now`` and optionally
        ``notes``; the history row is written in the same transaction.
        Raises ``NegotiationConflict`` when another writer got there first.
        """
        with transaction.atomic():
            updated = Negotiation.objects.filter(
                pk=negotiation.pk,
                version=negotiation.version,
                status__in=list(expected_statuses),
            ).update(
                **changes,
                last_action_by=history["actor_id"],
                updated_at=history["now"],
                version=F("version") + 1,
            )
            if updated == 0:
                logger.warning(
                    f"Concurrent update detected on negotiation {negotiation.pk} "
                    f"(expected version {negotiation.version})"
                )
                raise NegotiationConflict()

            fresh = Negotiation.objects.get(pk=negotiation.pk)
            self._record(
                fresh,
                action=history["action"],
                actor_id=history["actor_id"],
                from_status=negotiation.status,
                now=history["now"],
                notes=history.get("notes") or "",
            )
        return fresh

    def expire_if_stale(self, negotiation_id, now: datetime) -> bool:
        """
        Flip one record to ``expired`` if it is still active and past its
        expiry at write time. Returns whether this call expired it.
        """
        with transaction.atomic():
            current = self.get(negotiation_id)
            if current is None:
                return False
            updated = Negotiation.objects.filter(
                pk=negotiation_id,
                status__in=ACTIVE_STATUSES,
                expires_at__lt=now,
            ).update(
                status=NegotiationStatus.EXPIRED,
                last_action_by=SYSTEM_ACTOR,
                updated_at=now,
                version=F("version") + 1,
            )
            if not updated:
                return False
            previous_status = current.status
            current.status = NegotiationStatus.EXPIRED
            self._record(
                current,
                action="expired",
                actor_id=SYSTEM_ACTOR,
                from_status=previous_status,
                now=now,
                notes="Negotiation expired without a response",
            )
        return True

    def _record(
        self,
        negotiation: Negotiation,
        action: str,
        actor_id: str,
        from_status: str,
        now: datetime,
        notes: str = "",
    ) -> NegotiationHistory:
        return NegotiationHistory.objects.create(
            negotiation=negotiation,
            action=action,
            actor_id=actor_id,
            price=negotiation.final_price or negotiation.proposed_price,
            from_status=from_status,
            to_status=negotiation.status,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get(self, negotiation_id) -> Optional[Negotiation]:
        try:
            return self.queryset.get(pk=negotiation_id)
        except (Negotiation.DoesNotExist, ValueError, DjangoValidationError):
            return None

    def by_order(self, order_id: str) -> List[Negotiation]:
        return list(self.queryset.filter(order_id=order_id).order_by("-created_at"))

    def by_farmer(
        self, farmer_id: str, status: Optional[str] = None, limit: int = 50
    ) -> List[Negotiation]:
        qs = self.queryset.filter(farmer_id=farmer_id)
        if status:
            qs = qs.filter(status=status)
        return list(qs.order_by("-created_at")[:limit])

    def by_buyer(
        self, buyer_id: str, status: Optional[str] = None, limit: int = 50
    ) -> List[Negotiation]:
        qs = self.queryset.filter(buyer_id=buyer_id)
        if status:
            qs = qs.filter(status=status)
        return list(qs.order_by("-created_at")[:limit])

    def visible_to(self, participant_id: Optional[str] = None) -> QuerySet:
        """Base queryset for listings; ``None`` means every negotiation (staff)."""
        return self._for_participant(self.queryset, participant_id).order_by(
            "-created_at"
        )

    def active(
        self, limit: int = 100, participant_id: Optional[str] = None
    ) -> List[Negotiation]:
        qs = self._for_participant(
            self.queryset.filter(status__in=ACTIVE_STATUSES), participant_id
        )
        return list(qs.order_by("-created_at")[:limit])

    def expired(
        self, now: datetime, participant_id: Optional[str] = None
    ) -> List[Negotiation]:
        """Active records already past ``expires_at``, oldest expiry first."""
        qs = self._for_participant(
            self.queryset.filter(status__in=ACTIVE_STATUSES, expires_at__lt=now),
            participant_id,
        )
        return list(qs.order_by("expires_at"))

    def expiring_between(
        self, start: datetime, end: datetime, participant_id: Optional[str] = None
    ) -> List[Negotiation]:
        qs = self._for_participant(
            self.queryset.filter(
                status__in=ACTIVE_STATUSES,
                expires_at__gte=start,
                expires_at__lte=end,
            ),
            participant_id,
        )
        return list(qs.order_by("expires_at"))

    def search(
        self,
        query: str,
        status: Optional[str] = None,
        farmer_id: Optional[str] = None,
        buyer_id: Optional[str] = None,
        limit: int = 20,
        participant_id: Optional[str] = None,
    ) -> List[Negotiation]:
        term = query.strip()
        qs = self.queryset.filter(
            Q(farmer_notes__icontains=term) | Q(buyer_notes__icontains=term)
        )
        if status:
            qs = qs.filter(status=status)
        if farmer_id:
            qs = qs.filter(farmer_id=farmer_id)
        if buyer_id:
            qs = qs.filter(buyer_id=buyer_id)
        qs = self._for_participant(qs, participant_id)
        return list(qs.order_by("-created_at")[:limit])

    def created_between(self, start: datetime, end: datetime) -> QuerySet:
        return self.queryset.filter(created_at__gte=start, created_at__lte=end)

    def history_for(self, negotiation: Negotiation) -> List[NegotiationHistory]:
        return list(negotiation.history.order_by("created_at"))

    @staticmethod
    def _for_participant(qs: QuerySet, participant_id: Optional[str]) -> QuerySet:
        if participant_id is None:
            return qs
        return qs.filter(Q(farmer_id=participant_id) | Q(buyer_id=participant_id))
