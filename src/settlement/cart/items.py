"""Cart item management — commands and handler.

Carts are addressed by customer; the first item added creates the cart.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from settlement.cart.cart import ShoppingCart
from settlement.domain import settlement


@settlement.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = String(required=True, max_length=255)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)


@settlement.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    customer_id = String(required=True, max_length=255)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)


@settlement.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = String(required=True, max_length=255)
    item_id = Identifier(required=True)


@settlement.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = String(required=True, max_length=255)


def _cart_for(repo, customer_id):
    cart = repo.find_for_customer(customer_id)
    if cart is None:
        raise ObjectNotFoundError(f"No cart for customer {customer_id}")
    return cart


@settlement.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.find_for_customer(command.customer_id) or ShoppingCart.create(command.customer_id)
        item_id = cart.add_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            quantity=command.quantity,
        )
        repo.add(cart)
        return item_id

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = _cart_for(repo, command.customer_id)
        cart.update_item_quantity(item_id=command.item_id, new_quantity=command.new_quantity)
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = _cart_for(repo, command.customer_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        """Clearing a cart that does not exist is a no-op."""
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.find_for_customer(command.customer_id)
        if cart is None or not cart.items:
            return
        cart.clear()
        repo.add(cart)
