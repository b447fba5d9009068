from decimal import Decimal, InvalidOperation
from importlib import import_module
from typing import Dict, Optional, Protocol

from django.conf import settings


class OrderLookup(Protocol):
    """Resolves an order to its listing price; ``None`` means unknown order."""

    def get_listing_price(self, order_id: str) -> Optional[Decimal]: ...


class SettingsOrderLookup:
    """
    Listing prices from ``NEGOTIATION_SETTINGS["ORDER_PRICES"]``.

    Orders live in another service; this lookup keeps the negotiation app
    usable on its own and in tests.
    """

    def __init__(self, prices: Optional[Dict[str, object]] = None):
        if prices is None:
            prices = getattr(settings, "NEGOTIATION_SETTINGS", {}).get(
                "ORDER_PRICES", {}
            )
        self.prices = prices

    def get_listing_price(self, order_id: str) -> Optional[Decimal]:
        raw = self.prices.get(order_id)
        if raw is None:
            return None
        try:
            return Decimal(str(raw))
        except InvalidOperation:
            return None


def _resolve_class(dotted_path: str):
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = import_module(module_path)
    return getattr(module, class_name)


def get_order_lookup() -> OrderLookup:
    path = getattr(settings, "NEGOTIATION_SETTINGS", {}).get(
        "ORDER_LOOKUP", "apps.negotiations.collaborators.SettingsOrderLookup"
    )
    return _resolve_class(path)()
