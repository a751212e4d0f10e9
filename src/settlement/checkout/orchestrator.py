"""Settlement orchestrator — turns carts into orders along two paths.

Direct ("pay later"):
    Validating → Pricing-OK → Discount-Resolved → Order-Created →
    Inventory-Adjusted → Settled

Gateway-Deferred: a hosted payment session is opened first and no order
exists until the customer's payment is confirmed. Confirmation is keyed by
the gateway session id, so a retried or duplicated confirmation returns the
order created the first time (Already-Settled) instead of a second one.

Terminal failures are Rejected and Gateway-Declined. Every transition is
logged with the request's correlation id.

The discount counter and the settlement claim are updated atomically. Order
creation is its own unit of work; if it fails after a discount was redeemed,
the redemption is released. Inventory, cart clearing and notifications come
after the order is durable and are best-effort: their failures are logged,
never undone into the order. Inventory adjustment is retried when a
concurrent settlement of the same product wins the version check.
"""

import time
from enum import Enum
from uuid import uuid4

import structlog
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.utils.globals import current_domain
from structlog.contextvars import bound_contextvars

from settlement.cart.cart import ShoppingCart
from settlement.cart.items import ClearCart
from settlement.checkout.claim import SettlementClaims
from settlement.checkout.requests import (
    Address,
    GatewayCheckoutResult,
    Quote,
    SettlementResult,
)
from settlement.config import SettlementSettings, get_settings
from settlement.discount.ledger import DiscountLedger
from settlement.errors import (
    AuthenticationRequired,
    EmptyCart,
    GatewayDeclined,
    InvalidAddress,
    PersistenceError,
    RateLimited,
    SessionOwnershipMismatch,
    SettlementError,
    SettlementInProgress,
    new_error_id,
)
from settlement.gateway import get_gateway
from settlement.gateway.port import LineItem
from settlement.inventory.adjustment import AdjustInventory
from settlement.notifications import get_dispatcher
from settlement.notifications.port import NotificationKind
from settlement.order.factory import OrderFactory
from settlement.order.order import Order, OrderStatus, PaymentMethod
from settlement.order.placement import PlaceOrder
from settlement.pricing.validator import CartLine, CartValidator
from settlement.ratelimit import get_rate_limiter

logger = structlog.get_logger(__name__)

CLAIM_POLL_SECONDS = 0.05


class SettlementState(Enum):
    VALIDATING = "Validating"
    PRICING_OK = "Pricing-OK"
    DISCOUNT_RESOLVED = "Discount-Resolved"
    ORDER_CREATED = "Order-Created"
    INVENTORY_ADJUSTED = "Inventory-Adjusted"
    SETTLED = "Settled"
    REJECTED = "Rejected"
    GATEWAY_DECLINED = "Gateway-Declined"
    ALREADY_SETTLED = "Already-Settled"


class SettlementOrchestrator:
    def __init__(
        self,
        validator: CartValidator | None = None,
        ledger: DiscountLedger | None = None,
        factory: OrderFactory | None = None,
        settings: SettlementSettings | None = None,
        gateway=None,
        dispatcher=None,
        rate_limiter=None,
        claims: SettlementClaims | None = None,
    ):
        self.settings = settings or get_settings()
        self.validator = validator or CartValidator(settings=self.settings)
        self.ledger = ledger or DiscountLedger(self.settings)
        self.factory = factory or OrderFactory(settings=self.settings)
        self.claims = claims or SettlementClaims(self.settings)
        # Adapters resolve through their factories at call time unless pinned here
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._rate_limiter = rate_limiter

    @property
    def gateway(self):
        return self._gateway or get_gateway()

    @property
    def dispatcher(self):
        return self._dispatcher or get_dispatcher()

    @property
    def rate_limiter(self):
        return self._rate_limiter or get_rate_limiter()

    # -------------------------------------------------------------------
    # Direct settlement
    # -------------------------------------------------------------------
    def settle_direct(self, request, context) -> SettlementResult:
        with bound_contextvars(correlation_id=context.correlation_id, settlement_path="direct"):
            try:
                self._check_rate_limit(context, "checkout")
                self._transition(SettlementState.VALIDATING, line_count=len(request.lines))

                if request.shipping_address is None:
                    raise InvalidAddress("Shipping address is required.")
                address = request.shipping_address.validate()

                customer_email = context.customer_email or request.customer_email
                if not customer_email or "@" not in customer_email:
                    raise InvalidAddress("A valid email address is required.")
                customer_id = context.customer_id or f"guest_{uuid4()}"

                priced_cart = self.validator.validate_cart(request.lines)
                self._transition(SettlementState.PRICING_OK, subtotal=priced_cart.subtotal)

                redemption = None
                if request.discount_code:
                    redemption = self.ledger.redeem(request.discount_code, priced_cart.subtotal)
                self._transition(
                    SettlementState.DISCOUNT_RESOLVED,
                    discount_code=redemption.code if redemption else None,
                    discount_amount=redemption.discount_amount if redemption else 0.0,
                )
            except SettlementError as exc:
                self._transition(SettlementState.REJECTED, kind=exc.kind, reason=exc.message)
                raise

            draft = None
            try:
                draft = self.factory.build(
                    priced_cart,
                    address,
                    redemption=redemption,
                    shipping_method_id=request.shipping_method_id,
                )
                payload = draft.to_order_payload(customer_id, customer_email=customer_email)
                order_id = current_domain.process(PlaceOrder(**payload), asynchronous=False)
            except Exception as exc:
                error_id = new_error_id()
                logger.exception(
                    "order_creation_failed",
                    error_id=error_id,
                    order_number=draft.order_number if draft else None,
                )
                if redemption:
                    self.ledger.release(redemption.discount_id)
                raise PersistenceError(error_id) from exc

            self._transition(
                SettlementState.ORDER_CREATED,
                order_id=order_id,
                order_number=draft.order_number,
                total_amount=draft.total_amount,
            )
            self._after_order_created(order_id, customer_id if context.is_authenticated else None)
            self._notify(order_id)

            self._transition(SettlementState.SETTLED, order_id=order_id)
            return SettlementResult(
                order_id=order_id,
                order_number=draft.order_number,
                total_amount=draft.total_amount,
                status=OrderStatus.PENDING.value,
            )

    # -------------------------------------------------------------------
    # Quote (no mutation)
    # -------------------------------------------------------------------
    def quote(self, request, context) -> Quote:
        with bound_contextvars(correlation_id=context.correlation_id, settlement_path="quote"):
            self._check_rate_limit(context, "public")

            priced_cart = self.validator.validate_cart(request.lines)
            redemption = None
            if request.discount_code:
                redemption = self.ledger.preview(request.discount_code, priced_cart.subtotal)

            draft = self.factory.build(
                priced_cart,
                {},
                redemption=redemption,
                shipping_method_id=request.shipping_method_id,
            )
            return Quote(
                subtotal=draft.subtotal,
                discount_amount=draft.discount_amount,
                shipping_cost=draft.shipping_cost,
                tax_amount=draft.tax_amount,
                total_amount=draft.total_amount,
                currency=draft.currency,
                discount_code=draft.discount_code,
                lines=[line.to_dict() for line in draft.lines],
            )

    # -------------------------------------------------------------------
    # Gateway-Deferred settlement
    # -------------------------------------------------------------------
    def begin_gateway_checkout(self, request, context) -> GatewayCheckoutResult:
        with bound_contextvars(correlation_id=context.correlation_id, settlement_path="gateway"):
            try:
                self._check_rate_limit(context, "checkout")
                if not context.is_authenticated:
                    raise AuthenticationRequired("Sign in to pay by card")

                self._transition(SettlementState.VALIDATING)
                priced_cart = self.validator.validate_cart(self._server_cart_lines(context.customer_id))
                self._transition(SettlementState.PRICING_OK, subtotal=priced_cart.subtotal)
            except SettlementError as exc:
                self._transition(SettlementState.REJECTED, kind=exc.kind, reason=exc.message)
                raise

            draft = self.factory.build(priced_cart, {}, shipping_method_id=request.shipping_method_id)

            line_items = [
                LineItem(
                    name=line.product_name,
                    description=" / ".join(str(value) for value in line.variant_attributes.values()) or None,
                    unit_amount=line.unit_price,
                    quantity=line.quantity,
                )
                for line in draft.lines
            ]
            if draft.shipping_cost > 0:
                line_items.append(LineItem(name=draft.shipping.name, unit_amount=draft.shipping_cost, quantity=1))
            if draft.tax_amount > 0:
                line_items.append(LineItem(name="Tax", unit_amount=draft.tax_amount, quantity=1))

            storefront = self.settings.storefront_url
            session = self.gateway.create_session(
                line_items=line_items,
                success_url=f"{storefront}/order-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{storefront}/cart",
                metadata={
                    "customer_id": context.customer_id,
                    "customer_email": context.customer_email or "",
                    "shipping_method_id": request.shipping_method_id or "",
                },
                currency=self.settings.currency,
                customer_email=context.customer_email,
            )
            self.claims.open(session.session_id)

            logger.info(
                "gateway_session_created",
                session_id=session.session_id,
                customer_id=context.customer_id,
                total_amount=draft.total_amount,
            )
            return GatewayCheckoutResult(
                session_id=session.session_id,
                redirect_url=session.redirect_url,
                total_amount=draft.total_amount,
            )

    def confirm_gateway_payment(self, session_id, context) -> SettlementResult:
        with bound_contextvars(
            correlation_id=context.correlation_id,
            settlement_path="gateway",
            session_id=session_id,
        ):
            self._check_rate_limit(context, "checkout")

            existing = self._find_settled(session_id)
            if existing is not None:
                return self._already_settled(existing)

            status = self.gateway.get_session(session_id)
            if status is None or not status.is_paid:
                payment_status = status.payment_status if status else "unknown_session"
                self._transition(SettlementState.GATEWAY_DECLINED, payment_status=payment_status)
                raise GatewayDeclined(payment_status)

            customer_id = status.metadata.get("customer_id") or context.customer_id
            if context.customer_id and customer_id != context.customer_id:
                self._transition(SettlementState.REJECTED, kind=SessionOwnershipMismatch.kind)
                raise SessionOwnershipMismatch()
            customer_email = status.customer_email or status.metadata.get("customer_email") or context.customer_email

            if not self.claims.acquire(session_id):
                return self._already_settled(self._await_settled(session_id))

            try:
                draft, order_id = self._place_paid_order(session_id, status, customer_id, customer_email)
            except Exception:
                existing = self._find_settled(session_id)
                if existing is None:
                    self.claims.release(session_id)
                    raise
                self._settle_claim(session_id, str(existing.id))
                return self._already_settled(existing)

            self._settle_claim(session_id, order_id)

            self._transition(
                SettlementState.ORDER_CREATED,
                order_id=order_id,
                order_number=draft.order_number,
                total_amount=draft.total_amount,
            )
            self._after_order_created(order_id, customer_id)
            self._notify(order_id)

            self._transition(SettlementState.SETTLED, order_id=order_id)
            return SettlementResult(
                order_id=order_id,
                order_number=draft.order_number,
                total_amount=draft.total_amount,
                status=OrderStatus.PAID.value,
            )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _transition(self, state, **details):
        logger.info("settlement_transition", state=state.value, **details)

    def _check_rate_limit(self, context, bucket):
        decision = self.rate_limiter.check(context.rate_limit_identity, bucket)
        if not decision.allowed:
            logger.warning(
                "rate_limited",
                identity=context.rate_limit_identity,
                bucket=bucket,
                retry_after=decision.retry_after,
            )
            raise RateLimited(decision.retry_after)

    def _find_settled(self, session_id):
        return current_domain.repository_for(Order).find_by_settlement_key(session_id)

    def _place_paid_order(self, session_id, status, customer_id, customer_email):
        """Price the server cart and create the Paid order; runs under the session's claim."""
        try:
            self._transition(SettlementState.VALIDATING)
            address = Address.from_gateway(status.shipping_details).validate()
            if not customer_id:
                raise AuthenticationRequired("Payment session is not linked to a customer")
            # Payment is already taken: a stock shortfall must not stop the order
            priced_cart = self.validator.validate_cart(self._server_cart_lines(customer_id), enforce_stock=False)
            self._transition(SettlementState.PRICING_OK, subtotal=priced_cart.subtotal)
        except SettlementError as exc:
            logger.error("paid_session_rejected", kind=exc.kind, reason=exc.message)
            self._transition(SettlementState.REJECTED, kind=exc.kind, reason=exc.message)
            raise

        draft = None
        try:
            draft = self.factory.build(
                priced_cart,
                address,
                shipping_method_id=status.metadata.get("shipping_method_id") or None,
            )
            amount_paid = status.amount_total if status.amount_total is not None else draft.total_amount
            if abs(amount_paid - draft.total_amount) > self.settings.price_tolerance:
                logger.warning(
                    "gateway_amount_mismatch",
                    amount_paid=amount_paid,
                    total_amount=draft.total_amount,
                )

            payload = draft.to_order_payload(
                customer_id,
                customer_email=customer_email,
                status=OrderStatus.PAID.value,
                payment_method=PaymentMethod.CARD.value,
                settlement_key=session_id,
                payment_correlation_key=session_id,
                amount_paid=amount_paid,
            )
            order_id = current_domain.process(PlaceOrder(**payload), asynchronous=False)
        except ValidationError as exc:
            error_id = new_error_id()
            logger.error("order_creation_failed", error_id=error_id, error=str(exc.messages))
            raise PersistenceError(error_id) from exc
        except Exception as exc:
            error_id = new_error_id()
            logger.exception(
                "order_creation_failed",
                error_id=error_id,
                order_number=draft.order_number if draft else None,
            )
            raise PersistenceError(error_id) from exc

        return draft, order_id

    def _settle_claim(self, session_id, order_id):
        try:
            self.claims.settle(session_id, order_id)
        except Exception:
            logger.exception("settlement_claim_settle_failed", order_id=order_id)

    def _await_settled(self, session_id):
        """Wait for the claim holder's order to become visible."""
        deadline = time.monotonic() + self.settings.settlement_claim_wait_seconds
        while True:
            existing = self._find_settled(session_id)
            if existing is not None:
                return existing
            if time.monotonic() >= deadline:
                self._transition(SettlementState.REJECTED, kind=SettlementInProgress.kind)
                raise SettlementInProgress(session_id)
            time.sleep(CLAIM_POLL_SECONDS)

    def _already_settled(self, order):
        self._transition(SettlementState.ALREADY_SETTLED, order_id=str(order.id), order_number=order.order_number)
        return SettlementResult(
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=order.pricing.total_amount,
            status=order.status,
            already_settled=True,
        )

    def _server_cart_lines(self, customer_id):
        cart = current_domain.repository_for(ShoppingCart).find_for_customer(customer_id)
        if cart is None or not cart.items:
            raise EmptyCart()
        return [
            CartLine(
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                quantity=item.quantity,
            )
            for item in cart.items
        ]

    def _after_order_created(self, order_id, customer_id):
        """Adjust stock and clear the cart; the order stands whatever happens here."""
        adjustments = self._adjust_inventory(order_id)
        if adjustments is not None:
            self._transition(
                SettlementState.INVENTORY_ADJUSTED,
                order_id=order_id,
                lines_failed=sum(1 for adjustment in adjustments if not adjustment.success),
                lines_clamped=sum(1 for adjustment in adjustments if adjustment.clamped),
            )

        if customer_id:
            try:
                current_domain.process(ClearCart(customer_id=customer_id), asynchronous=False)
            except Exception:
                logger.exception("cart_clear_failed", customer_id=customer_id, order_id=order_id)

    def _adjust_inventory(self, order_id):
        """Run the inventory updater, re-reading stock when a concurrent save wins.

        Each attempt is a fresh unit of work; the order's inventory status
        makes a repeated run a no-op.
        """
        attempts = self.settings.inventory_adjust_attempts
        for attempt in range(1, attempts + 1):
            try:
                return current_domain.process(AdjustInventory(order_id=order_id), asynchronous=False) or []
            except ExpectedVersionError:
                logger.warning("inventory_adjust_conflict", order_id=order_id, attempt=attempt, max_attempts=attempts)
            except Exception:
                logger.exception("inventory_adjustment_failed", order_id=order_id)
                return None

        logger.error("inventory_adjust_exhausted_retries", order_id=order_id, attempts=attempts)
        return None

    def _notify(self, order_id):
        try:
            order = current_domain.repository_for(Order).get(order_id)
        except Exception:
            logger.exception("notification_order_read_failed", order_id=order_id)
            return

        payload = {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "status": order.status,
            "payment_method": order.payment_method,
            "total_amount": order.pricing.total_amount,
            "currency": order.pricing.currency,
            "customer_name": order.shipping_address.full_name if order.shipping_address else None,
            "lines": [
                {"product_name": line.product_name, "quantity": line.quantity, "unit_price": line.unit_price}
                for line in order.lines
            ],
        }

        recipients = []
        if order.customer_email:
            recipients.append((order.customer_email, NotificationKind.ORDER_CONFIRMATION))
        recipients.extend((admin, NotificationKind.ADMIN_NEW_ORDER) for admin in self.settings.admin_emails)

        for recipient, kind in recipients:
            try:
                self.dispatcher.send(recipient, kind.value, payload)
            except Exception as exc:
                logger.warning(
                    "notification_failed",
                    order_id=str(order.id),
                    recipient=recipient,
                    kind=kind.value,
                    error=str(exc),
                )
