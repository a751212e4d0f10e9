"""FastAPI routes for the Settlement domain — checkout, orders, carts, catalog."""

from fastapi import APIRouter, Depends, Header, Request
from protean.utils.globals import current_domain

from settlement.api.schemas import (
    AddShippingMethodRequest,
    AddToCartRequest,
    AddVariantRequest,
    CancelOrderRequest,
    CartItemResponse,
    CartResponse,
    CheckoutRequest,
    ConfirmationResponse,
    CreateDiscountRequest,
    CreateSessionRequest,
    IdResponse,
    OrderLineResponse,
    OrderResponse,
    QuoteLineResponse,
    QuoteRequestSchema,
    QuoteResponse,
    RecordPaymentRequest,
    RegisterProductRequest,
    RestockRequest,
    SessionResponse,
    SettlementResponse,
    StatusResponse,
    UpdateCartQuantityRequest,
)
from settlement.cart.cart import ShoppingCart
from settlement.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from settlement.catalog.management import AddVariant, RegisterProduct, RestockProduct
from settlement.checkout.orchestrator import SettlementOrchestrator
from settlement.checkout.requests import GatewayCheckoutRequest
from settlement.context import SettlementContext, new_correlation_id
from settlement.discount.management import CreateDiscount, DeactivateDiscount
from settlement.order.lifecycle import CancelOrder, FulfilOrder, RecordPayment
from settlement.order.order import Order
from settlement.shipping.management import AddShippingMethod


def settlement_context(
    request: Request,
    x_customer_id: str | None = Header(default=None),
    x_customer_email: str | None = Header(default=None),
    x_correlation_id: str | None = Header(default=None),
) -> SettlementContext:
    """Identity comes from upstream authentication as plain headers.

    The correlation id is the one the request middleware bound and echoes back.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client_address = forwarded.split(",")[0].strip()
    else:
        client_address = request.client.host if request.client else None

    return SettlementContext(
        customer_id=x_customer_id or None,
        customer_email=x_customer_email or None,
        client_address=client_address,
        correlation_id=getattr(request.state, "correlation_id", None) or x_correlation_id or new_correlation_id(),
    )


# ---------------------------------------------------------------------------
# Checkout Router
#
# Plain `def` handlers: they block on the payment gateway and the store, so
# FastAPI runs them in its threadpool instead of on the event loop.
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", status_code=201, response_model=SettlementResponse)
def checkout(
    body: CheckoutRequest,
    context: SettlementContext = Depends(settlement_context),
) -> SettlementResponse:
    result = SettlementOrchestrator().settle_direct(body.to_request(), context)
    return SettlementResponse(
        order_id=result.order_id,
        order_number=result.order_number,
        total_amount=result.total_amount,
        status=result.status,
    )


@checkout_router.post("/quote", response_model=QuoteResponse)
def quote(
    body: QuoteRequestSchema,
    context: SettlementContext = Depends(settlement_context),
) -> QuoteResponse:
    result = SettlementOrchestrator().quote(body.to_request(), context)
    return QuoteResponse(
        subtotal=result.subtotal,
        discount_amount=result.discount_amount,
        shipping_cost=result.shipping_cost,
        tax_amount=result.tax_amount,
        total_amount=result.total_amount,
        currency=result.currency,
        discount_code=result.discount_code,
        lines=[QuoteLineResponse(**line) for line in result.lines],
    )


@checkout_router.post("/sessions", status_code=201, response_model=SessionResponse)
def create_session(
    body: CreateSessionRequest,
    context: SettlementContext = Depends(settlement_context),
) -> SessionResponse:
    result = SettlementOrchestrator().begin_gateway_checkout(
        GatewayCheckoutRequest(shipping_method_id=body.shipping_method_id),
        context,
    )
    return SessionResponse(
        session_id=result.session_id,
        redirect_url=result.redirect_url,
        total_amount=result.total_amount,
    )


@checkout_router.post("/sessions/{session_id}/confirm", response_model=ConfirmationResponse)
def confirm_session(
    session_id: str,
    context: SettlementContext = Depends(settlement_context),
) -> ConfirmationResponse:
    """Safe to call repeatedly: later calls return the order created by the first."""
    result = SettlementOrchestrator().confirm_gateway_payment(session_id, context)
    return ConfirmationResponse(
        order_id=result.order_id,
        order_number=result.order_number,
        total_amount=result.total_amount,
        already_processed=result.already_settled,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=order.customer_id,
        status=order.status,
        payment_method=order.payment_method,
        inventory_status=order.inventory_status,
        subtotal=order.pricing.subtotal,
        discount_amount=order.pricing.discount_amount,
        discount_code=order.discount_code,
        shipping_cost=order.pricing.shipping_cost,
        tax_amount=order.pricing.tax_amount,
        total_amount=order.pricing.total_amount,
        amount_paid=order.amount_paid,
        lines=[
            OrderLineResponse(
                product_id=str(line.product_id),
                variant_id=str(line.variant_id) if line.variant_id else None,
                quantity=line.quantity,
                unit_price=line.unit_price,
                product_name=line.product_name,
            )
            for line in order.lines
        ],
    )


@order_router.put("/{order_id}/payment", response_model=StatusResponse)
async def record_payment(order_id: str, body: RecordPaymentRequest) -> StatusResponse:
    command = RecordPayment(
        order_id=order_id,
        amount=body.amount,
        correlation_key=body.correlation_key,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/fulfil", response_model=StatusResponse)
async def fulfil_order(order_id: str) -> StatusResponse:
    current_domain.process(FulfilOrder(order_id=order_id), asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    current_domain.process(CancelOrder(order_id=order_id, reason=body.reason), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{customer_id}", response_model=CartResponse)
async def get_cart(customer_id: str) -> CartResponse:
    cart = current_domain.repository_for(ShoppingCart).find_for_customer(customer_id)
    items = cart.items if cart else []
    return CartResponse(
        customer_id=customer_id,
        items=[
            CartItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                quantity=item.quantity,
            )
            for item in items
        ],
    )


@cart_router.post("/{customer_id}/items", status_code=201, response_model=IdResponse)
async def add_cart_item(customer_id: str, body: AddToCartRequest) -> IdResponse:
    command = AddToCart(
        customer_id=customer_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    item_id = current_domain.process(command, asynchronous=False)
    return IdResponse(id=item_id)


@cart_router.put("/{customer_id}/items/{item_id}", response_model=StatusResponse)
async def update_cart_item_quantity(
    customer_id: str, item_id: str, body: UpdateCartQuantityRequest
) -> StatusResponse:
    command = UpdateCartQuantity(
        customer_id=customer_id,
        item_id=item_id,
        new_quantity=body.new_quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{customer_id}/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(customer_id: str, item_id: str) -> StatusResponse:
    current_domain.process(RemoveFromCart(customer_id=customer_id, item_id=item_id), asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{customer_id}/items", response_model=StatusResponse)
async def clear_cart(customer_id: str) -> StatusResponse:
    current_domain.process(ClearCart(customer_id=customer_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Catalog Router (products, discounts, shipping methods)
# ---------------------------------------------------------------------------
catalog_router = APIRouter(tags=["catalog"])


@catalog_router.post("/products", status_code=201, response_model=IdResponse)
async def register_product(body: RegisterProductRequest) -> IdResponse:
    command = RegisterProduct(
        name=body.name,
        description=body.description,
        price=body.price,
        stock=body.stock,
    )
    return IdResponse(id=current_domain.process(command, asynchronous=False))


@catalog_router.post("/products/{product_id}/variants", status_code=201, response_model=IdResponse)
async def add_variant(product_id: str, body: AddVariantRequest) -> IdResponse:
    command = AddVariant(
        product_id=product_id,
        size=body.size,
        color=body.color,
        price_adjustment=body.price_adjustment,
        stock=body.stock,
    )
    return IdResponse(id=current_domain.process(command, asynchronous=False))


@catalog_router.put("/products/{product_id}/stock", response_model=StatusResponse)
async def restock_product(product_id: str, body: RestockRequest) -> StatusResponse:
    command = RestockProduct(
        product_id=product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@catalog_router.post("/discounts", status_code=201, response_model=IdResponse)
async def create_discount(body: CreateDiscountRequest) -> IdResponse:
    command = CreateDiscount(**body.model_dump())
    return IdResponse(id=current_domain.process(command, asynchronous=False))


@catalog_router.put("/discounts/{code}/deactivate", response_model=StatusResponse)
async def deactivate_discount(code: str) -> StatusResponse:
    current_domain.process(DeactivateDiscount(code=code), asynchronous=False)
    return StatusResponse()


@catalog_router.post("/shipping-methods", status_code=201, response_model=IdResponse)
async def add_shipping_method(body: AddShippingMethodRequest) -> IdResponse:
    command = AddShippingMethod(
        name=body.name,
        cost=body.cost,
        estimated_days_min=body.estimated_days_min,
        estimated_days_max=body.estimated_days_max,
    )
    return IdResponse(id=current_domain.process(command, asynchronous=False))
