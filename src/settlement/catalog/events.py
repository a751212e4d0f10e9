"""Domain events for the Product aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from settlement.domain import settlement


@settlement.event(part_of="Product")
class ProductRegistered:
    """A product became available for sale."""

    __version__ = 1

    product_id: Identifier(required=True)
    name: String(required=True)
    price: Float(required=True)
    stock: Integer(required=True)
    registered_at: DateTime(required=True)


@settlement.event(part_of="Product")
class VariantAdded:
    """A purchasable size/color variant was added to a product."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    size: String()
    color: String()
    price_adjustment: Float(required=True)
    stock: Integer(required=True)


@settlement.event(part_of="Product")
class StockRestocked:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier()
    quantity: Integer(required=True)
    new_stock: Integer(required=True)


@settlement.event(part_of="Product")
class StockDecremented:
    """Units left the shelf because an order was settled.

    ``clamped`` marks a decrement that would have taken stock below zero
    and was stopped at zero instead.
    """

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier()
    requested: Integer(required=True)
    applied: Integer(required=True)
    new_stock: Integer(required=True)
    clamped: Boolean(default=False)
