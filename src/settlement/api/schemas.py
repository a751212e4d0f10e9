"""Pydantic request/response schemas for the Settlement API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands and the orchestrator's request types.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from settlement.checkout.requests import Address, DirectSettlementRequest, QuoteRequest
from settlement.pricing.validator import CartLine


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    address_line1: str = Field(min_length=1, max_length=500)
    address_line2: str | None = Field(default=None, max_length=500)
    city: str = Field(min_length=1, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=50)

    def to_address(self) -> Address:
        return Address(**self.model_dump())


class CheckoutItemSchema(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1)
    price: float = Field(gt=0)

    def to_cart_line(self) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            variant_id=self.variant_id,
            quantity=self.quantity,
            client_price=self.price,
        )


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    items: list[CheckoutItemSchema] = Field(min_length=1)
    shipping_address: AddressSchema
    email: str | None = Field(default=None, max_length=254)
    discount_code: str | None = Field(default=None, max_length=50)
    shipping_method_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2, "price": 10.0}],
                    "shipping_address": {
                        "full_name": "Jane Doe",
                        "address_line1": "123 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "postal_code": "62701",
                        "country": "US",
                    },
                    "email": "jane@example.com",
                    "discount_code": "SAVE10",
                }
            ]
        }
    }

    def to_request(self) -> DirectSettlementRequest:
        return DirectSettlementRequest(
            lines=tuple(item.to_cart_line() for item in self.items),
            shipping_address=self.shipping_address.to_address(),
            customer_email=self.email,
            discount_code=self.discount_code or None,
            shipping_method_id=self.shipping_method_id,
        )


class QuoteRequestSchema(BaseModel):
    items: list[CheckoutItemSchema] = Field(min_length=1)
    discount_code: str | None = Field(default=None, max_length=50)
    shipping_method_id: str | None = None

    def to_request(self) -> QuoteRequest:
        return QuoteRequest(
            lines=tuple(item.to_cart_line() for item in self.items),
            discount_code=self.discount_code or None,
            shipping_method_id=self.shipping_method_id,
        )


class CreateSessionRequest(BaseModel):
    shipping_method_id: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class RecordPaymentRequest(BaseModel):
    amount: float = Field(ge=0)
    correlation_key: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Catalog / Discount / Shipping Request Schemas
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: float = Field(ge=0)
    stock: int = Field(ge=0, default=0)


class AddVariantRequest(BaseModel):
    size: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, max_length=50)
    price_adjustment: float = 0.0
    stock: int = Field(ge=0, default=0)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)
    variant_id: str | None = None


class CreateDiscountRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    discount_type: str = Field(pattern="^(percentage|fixed)$")
    value: float = Field(ge=0)
    minimum_purchase: float = Field(ge=0, default=0.0)
    usage_limit: int | None = Field(default=None, ge=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "SAVE10",
                    "discount_type": "fixed",
                    "value": 5.0,
                    "usage_limit": 100,
                }
            ]
        }
    }


class AddShippingMethodRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    cost: float = Field(ge=0)
    estimated_days_min: int | None = Field(default=None, ge=0)
    estimated_days_max: int | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class SettlementResponse(BaseModel):
    order_id: str
    order_number: str
    total_amount: float
    status: str


class ConfirmationResponse(BaseModel):
    order_id: str
    order_number: str
    total_amount: float
    already_processed: bool


class SessionResponse(BaseModel):
    session_id: str
    redirect_url: str
    total_amount: float


class QuoteLineResponse(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int
    unit_price: float
    product_name: str


class QuoteResponse(BaseModel):
    subtotal: float
    discount_amount: float
    shipping_cost: float
    tax_amount: float
    total_amount: float
    currency: str
    discount_code: str | None = None
    lines: list[QuoteLineResponse]


class OrderLineResponse(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int
    unit_price: float
    product_name: str


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    payment_method: str
    inventory_status: str
    subtotal: float
    discount_amount: float
    discount_code: str | None = None
    shipping_cost: float
    tax_amount: float
    total_amount: float
    amount_paid: float | None = None
    lines: list[OrderLineResponse]


class CartItemResponse(BaseModel):
    item_id: str
    product_id: str
    variant_id: str | None = None
    quantity: int


class CartResponse(BaseModel):
    customer_id: str
    items: list[CartItemResponse]


class IdResponse(BaseModel):
    id: str


class StatusResponse(BaseModel):
    status: str = "ok"
