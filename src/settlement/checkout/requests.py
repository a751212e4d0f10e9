"""Typed settlement requests and results.

The HTTP layer validates bodies with pydantic once and converts them into
these; the orchestrator never sees raw request data.
"""

from dataclasses import asdict, dataclass, field

from settlement.errors import InvalidAddress
from settlement.pricing.validator import CartLine

_ADDRESS_LIMITS = {
    "full_name": 255,
    "address_line1": 500,
    "address_line2": 500,
    "city": 100,
    "state": 100,
    "postal_code": 20,
    "country": 100,
    "phone": 50,
}
_REQUIRED_ADDRESS_FIELDS = ("full_name", "address_line1", "city", "postal_code", "country")


@dataclass(frozen=True)
class Address:
    full_name: str
    address_line1: str
    city: str
    postal_code: str
    country: str
    state: str | None = None
    address_line2: str | None = None
    phone: str | None = None

    def validate(self) -> dict:
        """Return the address as a dict, or raise ``InvalidAddress``."""
        data = {key: value.strip() if isinstance(value, str) else value for key, value in asdict(self).items()}

        missing = [name for name in _REQUIRED_ADDRESS_FIELDS if not data.get(name)]
        if missing:
            raise InvalidAddress(f"Shipping address is missing: {', '.join(missing)}")

        too_long = [name for name, limit in _ADDRESS_LIMITS.items() if data.get(name) and len(data[name]) > limit]
        if too_long:
            raise InvalidAddress(f"Shipping address fields are too long: {', '.join(too_long)}")

        return data

    @classmethod
    def from_gateway(cls, shipping_details) -> "Address":
        """Build an address from the gateway's ``{name, address: {...}}`` shape."""
        if not shipping_details or not shipping_details.get("address"):
            raise InvalidAddress("Payment session has no shipping details")

        address = shipping_details["address"]
        return cls(
            full_name=shipping_details.get("name") or "",
            address_line1=address.get("line1") or "",
            address_line2=address.get("line2"),
            city=address.get("city") or "",
            state=address.get("state"),
            postal_code=address.get("postal_code") or "",
            country=address.get("country") or "",
            phone=shipping_details.get("phone"),
        )


@dataclass(frozen=True)
class DirectSettlementRequest:
    lines: tuple[CartLine, ...]
    shipping_address: Address | None
    customer_email: str | None = None  # guests only; customers use their account email
    discount_code: str | None = None
    shipping_method_id: str | None = None


@dataclass(frozen=True)
class QuoteRequest:
    lines: tuple[CartLine, ...]
    discount_code: str | None = None
    shipping_method_id: str | None = None


@dataclass(frozen=True)
class GatewayCheckoutRequest:
    shipping_method_id: str | None = None


@dataclass(frozen=True)
class SettlementResult:
    order_id: str
    order_number: str
    total_amount: float
    status: str
    already_settled: bool = False


@dataclass(frozen=True)
class Quote:
    subtotal: float
    discount_amount: float
    shipping_cost: float
    tax_amount: float
    total_amount: float
    currency: str
    discount_code: str | None = None
    lines: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class GatewayCheckoutResult:
    session_id: str
    redirect_url: str
    total_amount: float
