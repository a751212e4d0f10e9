"""Shipping rate table — resolves the shipping cost of a settlement."""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from settlement.config import SettlementSettings, get_settings
from settlement.shipping.method import ShippingMethod


@dataclass(frozen=True)
class ShippingQuote:
    cost: float
    method_id: str | None = None
    name: str = "Standard Shipping"


class ShippingRateTable:
    def __init__(self, settings: SettlementSettings | None = None):
        self.settings = settings or get_settings()

    def get_method(self, method_id) -> ShippingQuote | None:
        if not method_id:
            return None
        try:
            method = current_domain.repository_for(ShippingMethod).get(str(method_id))
        except ObjectNotFoundError:
            return None
        if not method.active:
            return None
        return ShippingQuote(cost=round(method.cost, 2), method_id=str(method.id), name=method.name)

    def get_default(self, subtotal, method_requested=False) -> ShippingQuote:
        """Flat default rate, waived above the free-shipping threshold.

        The waiver applies only when the customer did not ask for a method.
        """
        if not method_requested and subtotal > self.settings.free_shipping_threshold:
            return ShippingQuote(cost=0.0, name="Free Shipping")
        return ShippingQuote(cost=round(self.settings.default_shipping_cost, 2))

    def resolve(self, method_id, subtotal) -> ShippingQuote:
        return self.get_method(method_id) or self.get_default(subtotal, method_requested=bool(method_id))
