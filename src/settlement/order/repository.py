"""Repository for the Order aggregate."""

from settlement.domain import settlement
from settlement.order.order import Order


@settlement.repository(part_of=Order)
class OrderRepository:
    def find_by_settlement_key(self, settlement_key: str) -> Order | None:
        results = self._dao.query.filter(settlement_key=settlement_key).all().items
        return results[0] if results else None

    def find_by_order_number(self, order_number: str) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all().items
        return results[0] if results else None

    def find_for_customer(self, customer_id: str) -> list[Order]:
        return self._dao.query.filter(customer_id=customer_id).order_by("-created_at").all().items
