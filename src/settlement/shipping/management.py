"""Shipping method management."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from settlement.domain import settlement
from settlement.shipping.method import ShippingMethod


@settlement.command(part_of="ShippingMethod")
class AddShippingMethod:
    name = String(required=True, max_length=100)
    cost = Float(required=True, min_value=0.0)
    estimated_days_min = Integer(min_value=0)
    estimated_days_max = Integer(min_value=0)


@settlement.command(part_of="ShippingMethod")
class DeactivateShippingMethod:
    method_id = Identifier(required=True)


@settlement.command_handler(part_of=ShippingMethod)
class ManageShippingMethodsHandler:
    @handle(AddShippingMethod)
    def add_shipping_method(self, command):
        method = ShippingMethod(
            name=command.name,
            cost=command.cost,
            estimated_days_min=command.estimated_days_min,
            estimated_days_max=command.estimated_days_max,
        )
        current_domain.repository_for(ShippingMethod).add(method)
        return str(method.id)

    @handle(DeactivateShippingMethod)
    def deactivate_shipping_method(self, command):
        repo = current_domain.repository_for(ShippingMethod)
        method = repo.get(command.method_id)
        method.deactivate()
        repo.add(method)
