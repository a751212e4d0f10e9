import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from settlement.cart.items import AddToCart
from settlement.catalog.management import AddVariant, RegisterProduct
from settlement.checkout.requests import Address, DirectSettlementRequest
from settlement.config import SettlementSettings
from settlement.context import SettlementContext
from settlement.discount.management import CreateDiscount
from settlement.gateway import set_gateway
from settlement.gateway.fake_adapter import FakeGateway
from settlement.notifications import set_dispatcher
from settlement.notifications.fake_adapter import FakeDispatcher
from settlement.pricing.validator import CartLine
from settlement.shipping.management import AddShippingMethod


@pytest.fixture(scope="session")
def settlement_bed():
    from settlement.domain import settlement

    bed = DomainFixture(settlement)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(settlement_bed):
    """Run each test inside the domain context; wipe stores afterwards."""
    with settlement_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        current_domain.event_store.store._data_reset()


@pytest.fixture()
def settings():
    return SettlementSettings(admin_emails=("ops@example.com",))


@pytest.fixture()
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def dispatcher():
    fake = FakeDispatcher()
    set_dispatcher(fake)
    return fake


class SettlementKit:
    """Seeds the store through real commands and builds settlement requests."""

    def product(self, name="Widget", price=10.0, stock=10):
        return current_domain.process(RegisterProduct(name=name, price=price, stock=stock), asynchronous=False)

    def variant(self, product_id, size="M", color="Red", price_adjustment=0.0, stock=5):
        command = AddVariant(
            product_id=product_id,
            size=size,
            color=color,
            price_adjustment=price_adjustment,
            stock=stock,
        )
        return current_domain.process(command, asynchronous=False)

    def discount(self, code="SAVE10", discount_type="fixed", value=5.0, usage_limit=1, **extra):
        command = CreateDiscount(
            code=code,
            discount_type=discount_type,
            value=value,
            usage_limit=usage_limit,
            **extra,
        )
        return current_domain.process(command, asynchronous=False)

    def shipping_method(self, name="Express", cost=15.0):
        return current_domain.process(AddShippingMethod(name=name, cost=cost), asynchronous=False)

    def cart_item(self, customer_id, product_id, quantity, variant_id=None):
        command = AddToCart(customer_id=customer_id, product_id=product_id, variant_id=variant_id, quantity=quantity)
        return current_domain.process(command, asynchronous=False)

    @staticmethod
    def address(**overrides):
        data = {
            "full_name": "Jane Doe",
            "address_line1": "123 Main St",
            "city": "Springfield",
            "state": "IL",
            "postal_code": "62701",
            "country": "US",
        }
        data.update(overrides)
        return Address(**data)

    def direct_request(self, lines, discount_code=None, shipping_method_id=None, email=None, **overrides):
        return DirectSettlementRequest(
            lines=tuple(CartLine(**line) for line in lines),
            shipping_address=overrides.get("shipping_address", self.address()),
            customer_email=email,
            discount_code=discount_code,
            shipping_method_id=shipping_method_id,
        )

    @staticmethod
    def customer(customer_id="cust-001", email="jane@example.com"):
        return SettlementContext(customer_id=customer_id, customer_email=email)

    @staticmethod
    def guest(client_address="203.0.113.7"):
        return SettlementContext(client_address=client_address)


@pytest.fixture()
def kit():
    return SettlementKit()


@pytest.fixture()
def run_concurrently(settlement_bed):
    """Run ``fn(index)`` on ``count`` threads released together.

    Each thread gets its own domain context over the shared stores, like
    concurrent requests. Exceptions are returned in place of results.
    """

    def run(fn, count=8):
        barrier = threading.Barrier(count)

        def worker(index):
            with settlement_bed.domain.domain_context():
                barrier.wait(timeout=10)
                try:
                    return fn(index)
                except Exception as exc:
                    return exc

        with ThreadPoolExecutor(max_workers=count) as pool:
            return list(pool.map(worker, range(count)))

    return run
