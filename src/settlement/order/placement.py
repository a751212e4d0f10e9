"""Order placement — command and handler.

The orchestrator builds the payload from an ``OrderDraft``; JSON text fields
carry the lines, address and totals across the command boundary.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from settlement.domain import settlement
from settlement.order.order import Order, OrderStatus, PaymentMethod


@settlement.command(part_of="Order")
class PlaceOrder:
    order_number = String(required=True, max_length=50)
    settlement_key = String(required=True, max_length=255)
    customer_id = String(required=True, max_length=255)
    customer_email = String(max_length=254)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH_ON_DELIVERY.value)
    payment_correlation_key = String(max_length=255)
    amount_paid = Float()
    lines = Text(required=True)  # JSON: list of resolved line dicts
    shipping_address = Text(required=True)  # JSON: address dict
    pricing = Text(required=True)  # JSON: totals dict
    shipping_method_id = Identifier()
    discount_id = Identifier()
    discount_code = String(max_length=50)


@settlement.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = Order.place(
            order_number=command.order_number,
            settlement_key=command.settlement_key,
            customer_id=command.customer_id,
            customer_email=command.customer_email,
            status=command.status,
            payment_method=command.payment_method,
            payment_correlation_key=command.payment_correlation_key,
            amount_paid=command.amount_paid,
            lines_data=json.loads(command.lines),
            shipping_address=json.loads(command.shipping_address),
            pricing=json.loads(command.pricing),
            shipping_method_id=command.shipping_method_id,
            discount_id=command.discount_id,
            discount_code=command.discount_code,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
