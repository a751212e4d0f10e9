"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from settlement.domain import settlement


@settlement.event(part_of="Order")
class OrderPlaced:
    """A settlement produced a durable order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = String(required=True)
    status = String(required=True)
    payment_method = String(required=True)
    subtotal = Float(required=True)
    discount_amount = Float(required=True)
    shipping_cost = Float(required=True)
    tax_amount = Float(required=True)
    total_amount = Float(required=True)
    line_count = Integer(required=True)
    placed_at = DateTime(required=True)


@settlement.event(part_of="Order")
class OrderPaid:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount_paid = Float(required=True)
    payment_correlation_key = String()
    paid_at = DateTime(required=True)


@settlement.event(part_of="Order")
class OrderFulfilled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    fulfilled_at = DateTime(required=True)


@settlement.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)


@settlement.event(part_of="Order")
class OrderInventoryAdjusted:
    """Stock was taken off the shelf for this order's lines."""

    __version__ = 1

    order_id = Identifier(required=True)
    inventory_status = String(required=True)
    lines_adjusted = Integer(required=True)
    lines_failed = Integer(required=True)
