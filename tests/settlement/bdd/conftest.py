"""Shared BDD fixtures and step definitions for settlement."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from settlement.catalog.product import Product
from settlement.checkout.orchestrator import SettlementOrchestrator
from settlement.order.order import Order


@pytest.fixture()
def orchestrator(settings, gateway, dispatcher):
    return SettlementOrchestrator(settings=settings)


@pytest.fixture()
def products():
    """Product ids by name."""
    return {}


@pytest.fixture()
def outcome():
    """Last settlement result, or the error that stopped it."""
    return {"result": None, "error": None, "confirmations": []}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced at {price:f} with {stock:d} in stock'))
def _(kit, products, name, price, stock):
    products[name] = kit.product(name=name, price=price, stock=stock)


@given(parsers.cfparse('a fixed discount "{code}" worth {value:f} usable {limit:d} time'))
def _(kit, code, value, limit):
    kit.discount(code=code, discount_type="fixed", value=value, usage_limit=limit)


@given(parsers.cfparse('customer "{customer_id}" has {quantity:d} "{name}" in their cart'))
def _(kit, products, customer_id, quantity, name):
    kit.cart_item(customer_id, products[name], quantity)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the settlement succeeds")
def _(outcome):
    assert outcome["error"] is None
    assert outcome["result"] is not None


@then(parsers.cfparse('the settlement is rejected as "{kind}"'))
def _(outcome, kind):
    assert outcome["error"] is not None
    assert outcome["error"].kind == kind


@then(parsers.cfparse("the order total is {total:f}"))
def _(outcome, total):
    assert outcome["result"].total_amount == pytest.approx(total)


@then(parsers.cfparse('the order status is "{status}"'))
def _(outcome, status):
    order = current_domain.repository_for(Order).get(outcome["result"].order_id)
    assert order.status == status


@then(parsers.cfparse("{count:d} order exists"))
@then(parsers.cfparse("{count:d} orders exist"))
def _(count):
    assert len(current_domain.repository_for(Order)._dao.query.all().items) == count


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(products, name, stock):
    assert current_domain.repository_for(Product).get(products[name]).stock == stock
