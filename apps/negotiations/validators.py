import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from apps.negotiations.config import NegotiationConfig
from apps.negotiations.exceptions import NegotiationValidationError, violation
from apps.negotiations.models import NegotiationStatus
from apps.negotiations.utils.statuses import (
    allowed_transitions,
    is_transition_allowed,
)

logger = logging.getLogger("negotiation_performance")


def discount_percentage(original_price: Decimal, proposed_price: Decimal) -> Decimal:
    """(original - proposed) / original * 100; negative when the offer is above list."""
    return (original_price - proposed_price) / original_price * 100


class NegotiationValidator:
    """
    Business rules for negotiations.

    Every check is pure: the current time is passed in and nothing is read
    from or written to the database. A failed check raises
    ``NegotiationValidationError`` carrying every violation found, not just
    the first one.
    """

    def __init__(self, config: NegotiationConfig):
        self.config = config

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _raise_if_any(errors: List[Dict[str, str]]):
        if errors:
            logger.warning(
                f"Negotiation validation failed: {[e['code'] for e in errors]}"
            )
            raise NegotiationValidationError(errors[0]["message"], errors=errors)

    def _price_errors(self, field: str, price, label: str) -> List[Dict[str, str]]:
        if price is None or price <= 0:
            return [
                violation(field, f"{label} must be a positive number", "invalid_number")
            ]
        return []

    def _discount_errors(
        self, field: str, original_price, proposed_price, enforce_min_difference=True
    ) -> List[Dict[str, str]]:
        errors = []
        discount = discount_percentage(original_price, proposed_price)
        if discount > self.config.max_discount_percent:
            errors.append(
                violation(
                    field,
                    f"Discount cannot exceed {self.config.max_discount_percent}%",
                    "max_discount_exceeded",
                )
            )
        if (
            enforce_min_difference
            and abs(discount) < self.config.min_price_difference_percent
            and proposed_price != original_price
        ):
            errors.append(
                violation(
                    field,
                    f"Price difference must be at least {self.config.min_price_difference_percent}%",
                    "min_price_difference",
                )
            )
        return errors

    def _notes_errors(self, field: str, notes: Optional[str]) -> List[Dict[str, str]]:
        if notes and len(notes) > self.config.max_notes_length:
            return [
                violation(
                    field,
                    f"Notes must not exceed {self.config.max_notes_length} characters",
                    "max_length",
                )
            ]
        return []

    def _expiry_errors(
        self, expires_at: Optional[datetime], now: datetime, check_horizon=True
    ) -> List[Dict[str, str]]:
        if expires_at is None:
            return []
        errors = []
        if expires_at <= now:
            errors.append(
                violation(
                    "expires_at", "Expiry date must be in the future", "invalid_date_range"
                )
            )
        elif check_horizon and expires_at > now + timedelta(
            days=self.config.max_expiry_days
        ):
            errors.append(
                violation(
                    "expires_at",
                    f"Expiry date cannot be more than {self.config.max_expiry_days} days in the future",
                    "invalid_date_range",
                )
            )
        return errors

    # ------------------------------------------------------------------
    # lifecycle rules
    # ------------------------------------------------------------------
    def validate_create(
        self,
        *,
        order_id: str,
        farmer_id: str,
        buyer_id: str,
        product_id: str,
        original_price: Optional[Decimal],
        proposed_price: Optional[Decimal],
        now: datetime,
        farmer_notes: Optional[str] = None,
        buyer_notes: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Dict:
        """
        Check an opening offer and return the normalized creation payload.

        The payload always has ``status=pending``, ``counter_offer_count=0``
        and an ``expires_at``, defaulting to ``now + default_expiry_hours``.
        """
        errors = []

        for field_name, value in (
            ("order_id", order_id),
            ("farmer_id", farmer_id),
            ("buyer_id", buyer_id),
            ("product_id", product_id),
        ):
            if not value:
                label = field_name.replace("_id", "").capitalize()
                errors.append(
                    violation(field_name, f"{label} ID is required", "required_field")
                )

        errors += self._price_errors("original_price", original_price, "Original price")
        errors += self._price_errors("proposed_price", proposed_price, "Proposed price")
        if (
            original_price is not None
            and proposed_price is not None
            and original_price > 0
            and proposed_price > 0
        ):
            errors += self._discount_errors(
                "proposed_price", original_price, proposed_price
            )

        errors += self._notes_errors("farmer_notes", farmer_notes)
        errors += self._notes_errors("buyer_notes", buyer_notes)
        errors += self._expiry_errors(expires_at, now)

        if farmer_id and farmer_id == buyer_id:
            errors.append(
                violation(
                    "buyer_id",
                    "Farmer and buyer cannot be the same person",
                    "invalid_relationship",
                )
            )

        self._raise_if_any(errors)

        return {
            "order_id": order_id,
            "farmer_id": farmer_id,
            "buyer_id": buyer_id,
            "product_id": product_id,
            "original_price": original_price,
            "proposed_price": proposed_price,
            "farmer_notes": farmer_notes or "",
            "buyer_notes": buyer_notes or "",
            "status": NegotiationStatus.PENDING,
            "counter_offer_count": 0,
            "expires_at": expires_at
            or now + timedelta(hours=self.config.default_expiry_hours),
        }

    def validate_counter_offer(
        self,
        *,
        current_counter_offer_count: int,
        original_price: Decimal,
        proposed_price: Optional[Decimal],
        now: datetime,
        notes: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ):
        errors = []
        if current_counter_offer_count >= self.config.max_counter_offers:
            errors.append(
                violation(
                    "counter_offer_count",
                    f"Maximum {self.config.max_counter_offers} counter offers allowed",
                    "max_counter_offers_exceeded",
                )
            )

        price_errors = self._price_errors(
            "proposed_price", proposed_price, "Proposed price"
        )
        errors += price_errors
        if not price_errors and original_price > 0:
            errors += self._discount_errors(
                "proposed_price", original_price, proposed_price
            )

        errors += self._notes_errors("notes", notes)
        errors += self._expiry_errors(expires_at, now)

        self._raise_if_any(errors)

    def validate_status_transition(self, current_status: str, new_status: str):
        if not is_transition_allowed(current_status, new_status):
            allowed = allowed_transitions(current_status)
            message = f"Invalid status transition from {current_status} to {new_status}"
            if not allowed:
                message += f" ({current_status} is final)"
            self._raise_if_any(
                [violation("status", message, "invalid_status_transition")]
            )

    def validate_acceptance(self, final_price: Optional[Decimal], original_price: Decimal):
        errors = self._price_errors("final_price", final_price, "Final price")
        if not errors:
            errors += self._discount_errors(
                "final_price", original_price, final_price, enforce_min_difference=False
            )
        self._raise_if_any(errors)

    def validate_price_change(self, original_price: Decimal, new_price: Decimal):
        if original_price is None or new_price is None or original_price <= 0 or new_price <= 0:
            self._raise_if_any(
                [violation("price", "Prices must be positive numbers", "invalid_number")]
            )
        self._raise_if_any(self._discount_errors("price", original_price, new_price))

    def validate_notes(self, field: str, notes: Optional[str]):
        self._raise_if_any(self._notes_errors(field, notes))

    # ------------------------------------------------------------------
    # read-side parameters
    # ------------------------------------------------------------------
    def validate_status_filter(self, status: Optional[str]):
        if status and status not in NegotiationStatus.values:
            self._raise_if_any(
                [
                    violation(
                        "status",
                        f"Status must be one of: {', '.join(NegotiationStatus.values)}",
                        "invalid_value",
                    )
                ]
            )

    def validate_search(
        self, query: Optional[str], status: Optional[str] = None, limit: Optional[int] = None
    ) -> int:
        """Returns the effective result limit."""
        errors = []
        stripped = (query or "").strip()
        if not stripped:
            errors.append(violation("query", "Search query is required", "required_field"))
        elif len(stripped) < self.config.search_min_query_length:
            errors.append(
                violation(
                    "query",
                    f"Search query must be at least {self.config.search_min_query_length} characters long",
                    "min_length",
                )
            )

        if limit is not None:
            if limit <= 0:
                errors.append(
                    violation("limit", "Limit must be a positive number", "invalid_number")
                )
            elif limit > self.config.search_limit_max:
                errors.append(
                    violation(
                        "limit",
                        f"Limit cannot exceed {self.config.search_limit_max}",
                        "max_value_exceeded",
                    )
                )

        if status and status not in NegotiationStatus.values:
            errors.append(
                violation(
                    "status",
                    f"Status must be one of: {', '.join(NegotiationStatus.values)}",
                    "invalid_value",
                )
            )

        self._raise_if_any(errors)
        return limit or self.config.search_limit_default

    def validate_date_range(self, start: Optional[datetime], end: Optional[datetime]):
        errors = []
        if start is None:
            errors.append(violation("start_date", "Start date is required", "required_field"))
        if end is None:
            errors.append(violation("end_date", "End date is required", "required_field"))
        if start is not None and end is not None and start > end:
            errors.append(
                violation(
                    "start_date",
                    "Start date must be before end date",
                    "invalid_date_range",
                )
            )
        self._raise_if_any(errors)
