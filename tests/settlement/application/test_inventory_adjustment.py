"""Tests for the AdjustInventory command handler."""

import json

import pytest
from protean import current_domain

from settlement.catalog.product import Product
from settlement.inventory.adjustment import AdjustInventory
from settlement.order.order import InventoryStatus, Order
from settlement.order.placement import PlaceOrder

ADDRESS = {
    "full_name": "Jane Doe",
    "address_line1": "123 Main St",
    "city": "Springfield",
    "postal_code": "62701",
    "country": "US",
}


def _place_order(lines, order_number="ORD-1-AAAAAAAAA"):
    """Place an order straight through the command, bypassing settlement checks."""
    subtotal = round(sum(line["unit_price"] * line["quantity"] for line in lines), 2)
    command = PlaceOrder(
        order_number=order_number,
        settlement_key=order_number,
        customer_id="cust-001",
        lines=json.dumps(lines),
        shipping_address=json.dumps(ADDRESS),
        pricing=json.dumps({"subtotal": subtotal, "total_amount": subtotal}),
    )
    return current_domain.process(command, asynchronous=False)


def _line(product_id, quantity, variant_id=None):
    return {
        "product_id": product_id,
        "variant_id": variant_id,
        "quantity": quantity,
        "unit_price": 10.0,
        "product_name": "Widget",
    }


def _adjust(order_id):
    return current_domain.process(AdjustInventory(order_id=order_id), asynchronous=False)


def _product(product_id):
    return current_domain.repository_for(Product).get(product_id)


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def test_decrements_product_stock(kit):
    product_id = kit.product(stock=10)
    order_id = _place_order([_line(product_id, 2)])

    adjustments = _adjust(order_id)

    assert _product(product_id).stock == 8
    assert [a.applied for a in adjustments] == [2]
    assert _order(order_id).inventory_status == InventoryStatus.ADJUSTED.value


def test_decrements_variant_stock(kit):
    product_id = kit.product(stock=10)
    variant_id = kit.variant(product_id, stock=5)
    order_id = _place_order([_line(product_id, 3, variant_id=variant_id)])

    _adjust(order_id)

    product = _product(product_id)
    assert product.find_variant(variant_id).stock == 2
    assert product.stock == 10


def test_same_product_on_two_lines(kit):
    product_id = kit.product(stock=10)
    variant_id = kit.variant(product_id, stock=5)
    order_id = _place_order([_line(product_id, 2), _line(product_id, 1, variant_id=variant_id)])

    _adjust(order_id)

    product = _product(product_id)
    assert product.stock == 8
    assert product.find_variant(variant_id).stock == 4


def test_stock_is_clamped_at_zero(kit):
    product_id = kit.product(stock=1)
    order_id = _place_order([_line(product_id, 3)])

    adjustments = _adjust(order_id)

    assert _product(product_id).stock == 0
    assert adjustments[0].clamped is True
    assert adjustments[0].applied == 1
    assert adjustments[0].success is True


def test_failed_line_does_not_stop_the_others(kit):
    product_id = kit.product(stock=10)
    order_id = _place_order([_line("missing-product", 1), _line(product_id, 2)])

    adjustments = _adjust(order_id)

    assert [a.success for a in adjustments] == [False, True]
    assert _product(product_id).stock == 8
    assert _order(order_id).inventory_status == InventoryStatus.PARTIAL.value


def test_unknown_variant_line_fails(kit):
    product_id = kit.product(stock=10)
    order_id = _place_order([_line(product_id, 1, variant_id="missing-variant")])

    adjustments = _adjust(order_id)

    assert adjustments[0].success is False
    assert _product(product_id).stock == 10


def test_adjusting_twice_changes_nothing(kit):
    product_id = kit.product(stock=10)
    order_id = _place_order([_line(product_id, 2)])

    _adjust(order_id)
    assert _adjust(order_id) == []
    assert _product(product_id).stock == 8


@pytest.mark.parametrize("quantity, expected_stock", [(1, 4), (5, 0), (9, 0)])
def test_resulting_stock(kit, quantity, expected_stock):
    product_id = kit.product(stock=5)
    order_id = _place_order([_line(product_id, quantity)])

    _adjust(order_id)

    assert _product(product_id).stock == expected_stock
