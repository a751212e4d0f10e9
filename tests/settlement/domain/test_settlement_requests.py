"""Tests for request values, the settlement context and error payloads."""

import re

import pytest

from settlement.checkout.requests import Address
from settlement.context import SettlementContext
from settlement.errors import (
    GatewayUnavailable,
    InvalidAddress,
    PersistenceError,
    PriceMismatch,
    RateLimited,
)
from settlement.order.factory import generate_order_number


class TestAddress:
    def _address(self, **overrides):
        data = {
            "full_name": "Jane Doe",
            "address_line1": "1 Main St",
            "city": "Springfield",
            "postal_code": "12345",
            "country": "US",
        }
        data.update(overrides)
        return Address(**data)

    def test_valid_address_is_trimmed(self):
        data = self._address(city="  Springfield ").validate()
        assert data["city"] == "Springfield"

    def test_missing_required_field(self):
        with pytest.raises(InvalidAddress, match="postal_code"):
            self._address(postal_code="  ").validate()

    def test_field_too_long(self):
        with pytest.raises(InvalidAddress, match="city"):
            self._address(city="x" * 101).validate()

    def test_from_gateway_shipping_details(self):
        address = Address.from_gateway(
            {
                "name": "Jane Doe",
                "address": {
                    "line1": "1 Main St",
                    "line2": None,
                    "city": "Springfield",
                    "state": "IL",
                    "postal_code": "12345",
                    "country": "US",
                },
            }
        )
        assert address.full_name == "Jane Doe"
        assert address.state == "IL"

    def test_from_gateway_without_details(self):
        with pytest.raises(InvalidAddress):
            Address.from_gateway(None)


class TestSettlementContext:
    def test_customer_identity(self):
        context = SettlementContext(customer_id="cust-001")
        assert context.is_authenticated
        assert context.rate_limit_identity == "customer:cust-001"

    def test_guest_identity(self):
        context = SettlementContext(client_address="10.0.0.1")
        assert not context.is_authenticated
        assert context.rate_limit_identity == "ip:10.0.0.1"

    def test_correlation_ids_are_unique(self):
        assert SettlementContext().correlation_id != SettlementContext().correlation_id


class TestErrors:
    def test_price_mismatch_payload(self):
        error = PriceMismatch("prod-1", expected=10.0, submitted=9.0)
        payload = error.to_dict()
        assert error.status_code == 400
        assert payload["error"] == "Price mismatch detected. Please refresh your cart."
        assert payload["product_id"] == "prod-1"

    def test_rate_limited_carries_retry_after(self):
        error = RateLimited(retry_after=42)
        assert error.status_code == 429
        assert error.retry_after == 42

    def test_gateway_unavailable_is_retryable(self):
        assert GatewayUnavailable().status_code == 503

    def test_persistence_error_has_generic_message(self):
        error = PersistenceError(error_id="err-1")
        assert error.status_code == 500
        assert error.to_dict()["error"] == "Failed to create order"


def test_order_number_format():
    number = generate_order_number()
    assert re.fullmatch(r"ORD-\d{13}-[A-Z0-9]{9}", number)
    assert generate_order_number() != number
