"""Tests for direct (pay later) settlement through the orchestrator."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ExpectedVersionError

from settlement.cart.cart import ShoppingCart
from settlement.catalog.product import Product
from settlement.checkout.orchestrator import SettlementOrchestrator
from settlement.config import SettlementSettings
from settlement.discount.discount import Discount
from settlement.errors import (
    DiscountRejected,
    EmptyCart,
    InsufficientStock,
    InvalidAddress,
    InvalidProduct,
    PersistenceError,
    PriceMismatch,
    RateLimited,
)
from settlement.inventory.adjustment import AdjustInventory
from settlement.notifications.port import NotificationKind
from settlement.order.factory import OrderDraft
from settlement.order.order import InventoryStatus, Order, OrderStatus, PaymentMethod


@pytest.fixture()
def orchestrator(settings, gateway, dispatcher):
    return SettlementOrchestrator(settings=settings)


def _orders():
    return current_domain.repository_for(Order)._dao.query.all().items


def _product(product_id):
    return current_domain.repository_for(Product).get(product_id)


class TestSuccessfulSettlement:
    def test_totals_are_computed_on_the_server(self, kit, orchestrator):
        product_id = kit.product(price=10.0, stock=10)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2, "client_price": 10.0}])

        result = orchestrator.settle_direct(request, kit.customer())

        assert result.total_amount == 31.59
        assert result.status == OrderStatus.PENDING.value
        assert result.already_settled is False

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.order_number == result.order_number
        assert order.pricing.subtotal == 20.0
        assert order.pricing.shipping_cost == 9.99
        assert order.pricing.tax_amount == 1.60
        assert order.payment_method == PaymentMethod.CASH_ON_DELIVERY.value
        assert order.customer_id == "cust-001"
        assert order.customer_email == "jane@example.com"

    def test_order_lines_carry_catalog_prices(self, kit, orchestrator):
        product_id = kit.product(price=10.0)
        variant_id = kit.variant(product_id, size="L", color="Blue", price_adjustment=2.0, stock=5)
        request = kit.direct_request([{"product_id": product_id, "variant_id": variant_id, "quantity": 1}])

        result = orchestrator.settle_direct(request, kit.customer())

        line = current_domain.repository_for(Order).get(result.order_id).lines[0]
        assert line.unit_price == 12.0
        assert json.loads(line.variant_attributes) == {"size": "L", "color": "Blue"}

    def test_stock_is_decremented(self, kit, orchestrator):
        product_id = kit.product(stock=10)
        request = kit.direct_request([{"product_id": product_id, "quantity": 3}])

        result = orchestrator.settle_direct(request, kit.customer())

        assert _product(product_id).stock == 7
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.inventory_status == InventoryStatus.ADJUSTED.value

    def test_requested_shipping_method(self, kit, orchestrator):
        product_id = kit.product(price=60.0)
        method_id = kit.shipping_method(name="Express", cost=15.0)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2}], shipping_method_id=method_id)

        result = orchestrator.settle_direct(request, kit.customer())

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.pricing.shipping_cost == 15.0
        assert str(order.shipping_method_id) == method_id
        assert result.total_amount == 144.60

    def test_guest_settlement(self, kit, orchestrator):
        product_id = kit.product()
        request = kit.direct_request([{"product_id": product_id, "quantity": 1}], email="guest@example.com")

        result = orchestrator.settle_direct(request, kit.guest())

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.customer_id.startswith("guest_")
        assert order.customer_email == "guest@example.com"

    def test_customer_cart_is_cleared(self, kit, orchestrator):
        product_id = kit.product()
        kit.cart_item("cust-001", product_id, 1)
        request = kit.direct_request([{"product_id": product_id, "quantity": 1}])

        orchestrator.settle_direct(request, kit.customer())

        cart = current_domain.repository_for(ShoppingCart).find_for_customer("cust-001")
        assert len(cart.items) == 0

    def test_notifications_sent(self, kit, orchestrator, dispatcher):
        product_id = kit.product()
        request = kit.direct_request([{"product_id": product_id, "quantity": 1}])

        result = orchestrator.settle_direct(request, kit.customer())

        confirmations = dispatcher.sent_of_kind(NotificationKind.ORDER_CONFIRMATION.value)
        assert [m["recipient"] for m in confirmations] == ["jane@example.com"]
        assert confirmations[0]["payload"]["order_number"] == result.order_number
        admin = dispatcher.sent_of_kind(NotificationKind.ADMIN_NEW_ORDER.value)
        assert [m["recipient"] for m in admin] == ["ops@example.com"]

    def test_notification_failure_does_not_fail_settlement(self, kit, orchestrator, dispatcher):
        dispatcher.configure(should_succeed=False)
        product_id = kit.product()
        request = kit.direct_request([{"product_id": product_id, "quantity": 1}])

        result = orchestrator.settle_direct(request, kit.customer())

        assert current_domain.repository_for(Order).get(result.order_id) is not None
        assert dispatcher.sent == []

    def test_unreadable_order_skips_notifications_only(self, kit, orchestrator, dispatcher, monkeypatch):
        product_id = kit.product(price=10.0, stock=10)
        request = kit.direct_request([{"product_id": product_id, "quantity": 1}])
        repository_cls = type(current_domain.repository_for(Order))

        def unreadable(self, identifier):
            raise ConnectionError("order store unreachable")

        monkeypatch.setattr(repository_cls, "get", unreadable)

        result = orchestrator.settle_direct(request, kit.customer())

        assert result.order_number.startswith("ORD-")
        assert [order.order_number for order in _orders()] == [result.order_number]
        assert dispatcher.sent == []


class TestDiscounts:
    def test_discount_reduces_total_and_tax(self, kit, orchestrator):
        product_id = kit.product(price=10.0)
        kit.discount(code="SAVE10", value=5.0, usage_limit=1)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2}], discount_code="save10")

        result = orchestrator.settle_direct(request, kit.customer())

        assert result.total_amount == 26.19
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.pricing.discount_amount == 5.0
        assert order.pricing.tax_amount == 1.20
        assert order.discount_code == "SAVE10"

    def test_single_use_code_cannot_be_used_twice(self, kit, orchestrator):
        product_id = kit.product(price=10.0)
        kit.discount(code="SAVE10", value=5.0, usage_limit=1)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2}], discount_code="SAVE10")

        orchestrator.settle_direct(request, kit.customer())
        with pytest.raises(DiscountRejected):
            orchestrator.settle_direct(request, kit.customer(customer_id="cust-002", email="john@example.com"))

        assert len(_orders()) == 1
        assert current_domain.repository_for(Discount).find_by_code("SAVE10").usage_count == 1

    def test_failed_order_creation_releases_the_discount(self, kit, orchestrator, monkeypatch):
        product_id = kit.product(price=10.0, stock=10)
        kit.discount(code="SAVE10", value=5.0, usage_limit=1)

        original = OrderDraft.to_order_payload

        def broken_payload(self, *args, **kwargs):
            payload = original(self, *args, **kwargs)
            payload["lines"] = "[]"
            return payload

        monkeypatch.setattr(OrderDraft, "to_order_payload", broken_payload)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2}], discount_code="SAVE10")

        with pytest.raises(PersistenceError) as exc_info:
            orchestrator.settle_direct(request, kit.customer())

        assert exc_info.value.error_id.startswith("err-")
        assert _orders() == []
        assert current_domain.repository_for(Discount).find_by_code("SAVE10").usage_count == 0
        assert _product(product_id).stock == 10

    def test_failed_draft_releases_the_discount(self, kit, orchestrator, monkeypatch):
        product_id = kit.product(price=10.0, stock=10)
        kit.discount(code="SAVE10", value=5.0, usage_limit=1)

        def unavailable_rates(*args, **kwargs):
            raise ConnectionError("shipping methods unreachable")

        monkeypatch.setattr(orchestrator.factory, "build", unavailable_rates)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2}], discount_code="SAVE10")

        with pytest.raises(PersistenceError):
            orchestrator.settle_direct(request, kit.customer())

        assert _orders() == []
        assert current_domain.repository_for(Discount).find_by_code("SAVE10").usage_count == 0


class TestRejections:
    def test_price_mismatch_creates_nothing(self, kit, orchestrator, dispatcher):
        product_id = kit.product(price=10.0, stock=10)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2, "client_price": 9.0}])

        with pytest.raises(PriceMismatch):
            orchestrator.settle_direct(request, kit.customer())

        assert _orders() == []
        assert _product(product_id).stock == 10
        assert dispatcher.sent == []

    def test_price_mismatch_does_not_consume_discount(self, kit, orchestrator):
        product_id = kit.product(price=10.0)
        kit.discount(code="SAVE10", usage_limit=1)
        request = kit.direct_request(
            [{"product_id": product_id, "quantity": 2, "client_price": 9.0}], discount_code="SAVE10"
        )

        with pytest.raises(PriceMismatch):
            orchestrator.settle_direct(request, kit.customer())

        assert current_domain.repository_for(Discount).find_by_code("SAVE10").usage_count == 0

    def test_insufficient_stock(self, kit, orchestrator):
        product_id = kit.product(stock=1)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2}])

        with pytest.raises(InsufficientStock):
            orchestrator.settle_direct(request, kit.customer())
        assert _orders() == []

    def test_unknown_product(self, kit, orchestrator):
        request = kit.direct_request([{"product_id": "missing", "quantity": 1}])
        with pytest.raises(InvalidProduct):
            orchestrator.settle_direct(request, kit.customer())

    def test_empty_cart(self, kit, orchestrator):
        with pytest.raises(EmptyCart):
            orchestrator.settle_direct(kit.direct_request([]), kit.customer())

    def test_missing_address(self, kit, orchestrator):
        product_id = kit.product()
        request = kit.direct_request([{"product_id": product_id, "quantity": 1}], shipping_address=None)
        with pytest.raises(InvalidAddress):
            orchestrator.settle_direct(request, kit.customer())

    def test_incomplete_address(self, kit, orchestrator):
        product_id = kit.product()
        request = kit.direct_request(
            [{"product_id": product_id, "quantity": 1}], shipping_address=kit.address(city="")
        )
        with pytest.raises(InvalidAddress):
            orchestrator.settle_direct(request, kit.customer())

    def test_guest_needs_an_email(self, kit, orchestrator):
        product_id = kit.product()
        request = kit.direct_request([{"product_id": product_id, "quantity": 1}])
        with pytest.raises(InvalidAddress, match="email"):
            orchestrator.settle_direct(request, kit.guest())

    def test_rate_limited_after_ten_attempts(self, kit, orchestrator):
        product_id = kit.product(stock=100)
        request = kit.direct_request([{"product_id": product_id, "quantity": 1}])
        for _ in range(10):
            orchestrator.settle_direct(request, kit.customer())

        with pytest.raises(RateLimited) as exc_info:
            orchestrator.settle_direct(request, kit.customer())

        assert exc_info.value.retry_after > 0
        assert len(_orders()) == 10


class TestInventoryConflicts:
    @pytest.fixture()
    def conflicting_process(self, monkeypatch):
        """Make the first ``failures`` inventory adjustments lose the version check."""
        domain = current_domain._get_current_object()
        real_process = domain.process
        conflicts = []

        def install(failures):
            def process(command, *args, **kwargs):
                if isinstance(command, AdjustInventory) and len(conflicts) < failures:
                    conflicts.append(command.order_id)
                    raise ExpectedVersionError("Wrong expected version")
                return real_process(command, *args, **kwargs)

            monkeypatch.setattr(domain, "process", process)
            return conflicts

        return install

    def test_conflict_is_retried_with_a_fresh_read(self, kit, orchestrator, conflicting_process):
        product_id = kit.product(price=10.0, stock=10)
        conflicts = conflicting_process(failures=2)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2}])

        result = orchestrator.settle_direct(request, kit.customer())

        assert conflicts == [result.order_id, result.order_id]
        assert _product(product_id).stock == 8
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.inventory_status == InventoryStatus.ADJUSTED.value

    def test_order_stands_when_retries_run_out(self, kit, gateway, dispatcher, conflicting_process):
        orchestrator = SettlementOrchestrator(settings=SettlementSettings(inventory_adjust_attempts=3))
        product_id = kit.product(price=10.0, stock=10)
        conflicts = conflicting_process(failures=100)
        request = kit.direct_request([{"product_id": product_id, "quantity": 2}])

        result = orchestrator.settle_direct(request, kit.customer())

        assert len(conflicts) == 3
        assert _product(product_id).stock == 10
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.inventory_status == InventoryStatus.PENDING.value
