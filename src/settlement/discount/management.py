"""Discount management — create and deactivate codes."""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, Integer, String
from protean.utils.globals import current_domain

from settlement.discount.discount import Discount, DiscountType
from settlement.domain import settlement


@settlement.command(part_of="Discount")
class CreateDiscount:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    value = Float(required=True, min_value=0.0)
    minimum_purchase = Float(default=0.0, min_value=0.0)
    usage_limit = Integer(min_value=0)
    valid_from = DateTime()
    valid_until = DateTime()


@settlement.command(part_of="Discount")
class DeactivateDiscount:
    code = String(required=True, max_length=50)


@settlement.command_handler(part_of=Discount)
class ManageDiscountsHandler:
    @handle(CreateDiscount)
    def create_discount(self, command):
        repo = current_domain.repository_for(Discount)
        if repo.find_by_code(command.code) is not None:
            raise ValidationError({"code": [f"Discount code {command.code.upper()} already exists"]})

        discount = Discount.create(
            code=command.code,
            discount_type=command.discount_type,
            value=command.value,
            minimum_purchase=command.minimum_purchase,
            usage_limit=command.usage_limit,
            valid_from=command.valid_from,
            valid_until=command.valid_until,
        )
        repo.add(discount)
        return str(discount.id)

    @handle(DeactivateDiscount)
    def deactivate_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.find_by_code(command.code)
        if discount is None:
            raise ObjectNotFoundError(f"Discount code {command.code.upper()} does not exist")

        discount.deactivate()
        repo.add(discount)
