"""Domain events for the Discount aggregate."""

from protean.fields import Float, Identifier, Integer, String

from settlement.domain import settlement


@settlement.event(part_of="Discount")
class DiscountCreated:
    __version__ = 1

    discount_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    value = Float(required=True)
    usage_limit = Integer()


@settlement.event(part_of="Discount")
class DiscountRedeemed:
    """One use of a code was consumed by a settlement."""

    __version__ = 1

    discount_id = Identifier(required=True)
    code = String(required=True)
    subtotal = Float(required=True)
    discount_amount = Float(required=True)
    usage_count = Integer(required=True)


@settlement.event(part_of="Discount")
class DiscountReleased:
    """A redemption was given back because its order could not be created."""

    __version__ = 1

    discount_id = Identifier(required=True)
    code = String(required=True)
    usage_count = Integer(required=True)


@settlement.event(part_of="Discount")
class DiscountDeactivated:
    __version__ = 1

    discount_id = Identifier(required=True)
    code = String(required=True)
