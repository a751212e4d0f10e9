"""Order factory — turns a priced cart into an immutable order draft.

Pure computation: no repository access beyond the shipping rate lookup and
no side effects.
"""

import json
import secrets
import string
import time
from dataclasses import dataclass

from settlement.config import SettlementSettings, get_settings
from settlement.order.order import OrderStatus, PaymentMethod
from settlement.pricing.validator import PricedCart
from settlement.shipping.rates import ShippingQuote, ShippingRateTable

_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    """``ORD-<epoch millis>-<9 upper-case alphanumerics>``."""
    suffix = "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


@dataclass(frozen=True)
class OrderDraft:
    order_number: str
    priced_cart: PricedCart
    shipping: ShippingQuote
    shipping_address: dict
    subtotal: float
    discount_amount: float
    shipping_cost: float
    tax_amount: float
    total_amount: float
    currency: str = "USD"
    discount_id: str | None = None
    discount_code: str | None = None

    @property
    def lines(self):
        return self.priced_cart.lines

    def pricing(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount,
            "shipping_cost": self.shipping_cost,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "currency": self.currency,
        }

    def to_order_payload(
        self,
        customer_id,
        customer_email=None,
        status=OrderStatus.PENDING.value,
        payment_method=PaymentMethod.CASH_ON_DELIVERY.value,
        settlement_key=None,
        payment_correlation_key=None,
        amount_paid=None,
    ) -> dict:
        """Keyword arguments for the ``PlaceOrder`` command."""
        lines = []
        for line in self.lines:
            data = line.to_dict()
            data["variant_attributes"] = json.dumps(line.variant_attributes) if line.variant_attributes else None
            lines.append(data)

        return {
            "order_number": self.order_number,
            "settlement_key": settlement_key or self.order_number,
            "customer_id": customer_id,
            "customer_email": customer_email,
            "status": status,
            "payment_method": payment_method,
            "payment_correlation_key": payment_correlation_key,
            "amount_paid": amount_paid,
            "lines": json.dumps(lines),
            "shipping_address": json.dumps(self.shipping_address),
            "pricing": json.dumps(self.pricing()),
            "shipping_method_id": self.shipping.method_id,
            "discount_id": self.discount_id,
            "discount_code": self.discount_code,
        }


class OrderFactory:
    def __init__(self, rates: ShippingRateTable | None = None, settings: SettlementSettings | None = None):
        self.settings = settings or get_settings()
        self.rates = rates or ShippingRateTable(self.settings)

    def build(self, priced_cart, shipping_address, redemption=None, shipping_method_id=None) -> OrderDraft:
        subtotal = priced_cart.subtotal
        discount_amount = round(min(redemption.discount_amount, subtotal), 2) if redemption else 0.0

        shipping = self.rates.resolve(shipping_method_id, subtotal)
        tax_amount = round((subtotal - discount_amount) * self.settings.tax_rate, 2)
        total_amount = round(subtotal - discount_amount + shipping.cost + tax_amount, 2)

        return OrderDraft(
            order_number=generate_order_number(),
            priced_cart=priced_cart,
            shipping=shipping,
            shipping_address=dict(shipping_address),
            subtotal=subtotal,
            discount_amount=discount_amount,
            shipping_cost=shipping.cost,
            tax_amount=tax_amount,
            total_amount=total_amount,
            currency=self.settings.currency,
            discount_id=redemption.discount_id if redemption else None,
            discount_code=redemption.code if redemption else None,
        )
