"""Repository for the ShoppingCart aggregate."""

from settlement.cart.cart import ShoppingCart
from settlement.domain import settlement


@settlement.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def find_for_customer(self, customer_id: str) -> ShoppingCart | None:
        results = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return results[0] if results else None
