"""Post-settlement order lifecycle — payment, fulfilment, cancellation."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from settlement.domain import settlement
from settlement.order.order import Order


@settlement.command(part_of="Order")
class RecordPayment:
    """Cash collected on delivery, or a payment reconciled after the fact."""

    order_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    correlation_key = String(max_length=255)


@settlement.command(part_of="Order")
class FulfilOrder:
    order_id = Identifier(required=True)


@settlement.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@settlement.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment(command.amount, correlation_key=command.correlation_key)
        repo.add(order)

    @handle(FulfilOrder)
    def fulfil_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.fulfil()
        repo.add(order)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(command.reason)
        repo.add(order)
