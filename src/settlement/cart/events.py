"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer, String

from settlement.domain import settlement


@settlement.event(part_of="ShoppingCart")
class CartItemAdded:
    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = String(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)


@settlement.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@settlement.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@settlement.event(part_of="ShoppingCart")
class CartCleared:
    """The cart was emptied, usually because its contents became an order."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = String(required=True)
    items_removed = Integer(required=True)
