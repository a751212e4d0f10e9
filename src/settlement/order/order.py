"""Order aggregate — the durable outcome of a settlement.

Status moves forward only:

    PENDING → PAID → FULFILLED
    PENDING | PAID → CANCELLED

Direct settlements start PENDING (cash on delivery). Gateway settlements are
created PAID because payment was verified before the order existed.

Every order carries a ``settlement_key`` that is unique across orders: the
gateway session id for gateway settlements, the order number otherwise.
That uniqueness is what makes confirming a payment twice harmless.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from settlement.domain import settlement
from settlement.order.events import OrderCancelled, OrderFulfilled, OrderInventoryAdjusted, OrderPaid, OrderPlaced


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FULFILLED = "Fulfilled"
    CANCELLED = "Cancelled"


class PaymentMethod(Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD = "card"


class InventoryStatus(Enum):
    PENDING = "Pending"
    ADJUSTED = "Adjusted"
    PARTIAL = "Partial"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.FULFILLED, OrderStatus.CANCELLED},
    OrderStatus.FULFILLED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@settlement.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships, captured at settlement time and never edited."""

    full_name = String(required=True, max_length=255)
    address_line1 = String(required=True, max_length=500)
    address_line2 = String(max_length=500)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=50)


@settlement.value_object(part_of="Order")
class OrderPricing:
    """Server-computed totals of an order.

    ``total_amount`` must equal subtotal minus discount plus shipping plus tax.
    """

    subtotal = Float(required=True, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    tax_amount = Float(default=0.0, min_value=0.0)
    total_amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")

    @invariant.post
    def total_must_add_up(self):
        expected = round(self.subtotal - self.discount_amount + self.shipping_cost + self.tax_amount, 2)
        if abs(expected - self.total_amount) > 0.005:
            raise ValidationError(
                {"total_amount": [f"Total {self.total_amount} does not match computed total {expected}"]}
            )

    @invariant.post
    def discount_cannot_exceed_subtotal(self):
        if self.discount_amount > self.subtotal:
            raise ValidationError({"discount_amount": ["Discount cannot exceed the subtotal"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@settlement.entity(part_of="Order")
class OrderLine:
    """A purchased product at the price the catalog quoted during settlement."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    product_name = String(required=True, max_length=255)
    variant_attributes = Text()  # JSON: {"size": ..., "color": ...}

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@settlement.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    settlement_key = String(required=True, max_length=255, unique=True)
    customer_id = String(required=True, max_length=255)
    customer_email = String(max_length=254)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    lines = HasMany(OrderLine)
    pricing = ValueObject(OrderPricing)
    shipping_address = ValueObject(ShippingAddress)
    shipping_method_id = Identifier()
    discount_id = Identifier()
    discount_code = String(max_length=50)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH_ON_DELIVERY.value)
    payment_correlation_key = String(max_length=255)
    amount_paid = Float(min_value=0.0)
    inventory_status = String(choices=InventoryStatus, default=InventoryStatus.PENDING.value)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        lines_data,
        pricing,
        shipping_address,
        customer_email=None,
        status=OrderStatus.PENDING.value,
        payment_method=PaymentMethod.CASH_ON_DELIVERY.value,
        settlement_key=None,
        payment_correlation_key=None,
        amount_paid=None,
        shipping_method_id=None,
        discount_id=None,
        discount_code=None,
    ):
        if not lines_data:
            raise ValidationError({"lines": ["An order must have at least one line"]})
        if OrderStatus(status) not in (OrderStatus.PENDING, OrderStatus.PAID):
            raise ValidationError({"status": [f"Orders cannot be placed in {status} status"]})

        now = datetime.now(UTC)
        lines = [
            OrderLine(
                product_id=line["product_id"],
                variant_id=line.get("variant_id"),
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                product_name=line["product_name"],
                variant_attributes=line.get("variant_attributes"),
            )
            for line in lines_data
        ]

        order = cls(
            order_number=order_number,
            settlement_key=settlement_key or order_number,
            customer_id=customer_id,
            customer_email=customer_email,
            status=status,
            lines=lines,
            pricing=OrderPricing(**pricing),
            shipping_address=ShippingAddress(**shipping_address),
            shipping_method_id=shipping_method_id,
            discount_id=discount_id,
            discount_code=discount_code,
            payment_method=payment_method,
            payment_correlation_key=payment_correlation_key,
            amount_paid=amount_paid,
            inventory_status=InventoryStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=customer_id,
                status=status,
                payment_method=payment_method,
                subtotal=order.pricing.subtotal,
                discount_amount=order.pricing.discount_amount,
                shipping_cost=order.pricing.shipping_cost,
                tax_amount=order.pricing.tax_amount,
                total_amount=order.pricing.total_amount,
                line_count=len(lines),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def record_payment(self, amount, correlation_key=None):
        self._assert_can_transition(OrderStatus.PAID)
        if amount < 0:
            raise ValidationError({"amount_paid": ["Amount paid cannot be negative"]})

        now = datetime.now(UTC)
        self.status = OrderStatus.PAID.value
        self.amount_paid = round(amount, 2)
        if correlation_key:
            self.payment_correlation_key = correlation_key
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                order_number=self.order_number,
                amount_paid=self.amount_paid,
                payment_correlation_key=self.payment_correlation_key,
                paid_at=now,
            )
        )

    def fulfil(self):
        self._assert_can_transition(OrderStatus.FULFILLED)

        now = datetime.now(UTC)
        self.status = OrderStatus.FULFILLED.value
        self.updated_at = now

        self.raise_(OrderFulfilled(order_id=str(self.id), order_number=self.order_number, fulfilled_at=now))

    def cancel(self, reason):
        self._assert_can_transition(OrderStatus.CANCELLED)

        previous_status = self.status
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous_status,
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Inventory bookkeeping
    # -------------------------------------------------------------------
    @property
    def inventory_adjusted(self) -> bool:
        return InventoryStatus(self.inventory_status) != InventoryStatus.PENDING

    def record_inventory_adjustment(self, lines_adjusted, lines_failed):
        if self.inventory_adjusted:
            raise ValidationError({"inventory_status": ["Inventory was already adjusted for this order"]})

        status = InventoryStatus.PARTIAL if lines_failed else InventoryStatus.ADJUSTED
        self.inventory_status = status.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderInventoryAdjusted(
                order_id=str(self.id),
                inventory_status=status.value,
                lines_adjusted=lines_adjusted,
                lines_failed=lines_failed,
            )
        )
