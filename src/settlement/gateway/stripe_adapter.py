"""Stripe payment gateway adapter (Checkout Sessions).

Amounts cross the wire in the smallest currency unit. Shipping details are
read from ``shipping_details`` or, on newer API versions,
``collected_information.shipping_details``; the customer details address
is the last resort.
"""

import stripe
import structlog

from settlement.errors import GatewayUnavailable, new_error_id
from settlement.gateway.port import CheckoutSession, LineItem, PaymentGateway, SessionStatus

logger = structlog.get_logger(__name__)

SHIPPING_COUNTRIES = ["US", "CA", "GB", "AU"]


def _to_cents(amount: float) -> int:
    return int(round(amount * 100))


def _plain(value):
    """Turn a StripeObject tree into plain dicts and lists."""
    if hasattr(value, "to_dict"):
        value = value.to_dict()
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, timeout_seconds: float = 10.0, max_network_retries: int = 2) -> None:
        self.api_key = api_key
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout_seconds)
        stripe.max_network_retries = max_network_retries

    def create_session(
        self,
        line_items: list[LineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict,
        currency: str = "USD",
        customer_email: str | None = None,
    ) -> CheckoutSession:
        payload_items = []
        for item in line_items:
            product_data = {"name": item.name}
            if item.description:
                product_data["description"] = item.description
            payload_items.append(
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": product_data,
                        "unit_amount": _to_cents(item.unit_amount),
                    },
                    "quantity": item.quantity,
                }
            )

        params = {
            "mode": "payment",
            "line_items": payload_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": {key: "" if value is None else str(value) for key, value in metadata.items()},
            "shipping_address_collection": {"allowed_countries": SHIPPING_COUNTRIES},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            error_id = new_error_id()
            logger.error("stripe_session_create_failed", error_id=error_id, error=str(exc))
            raise GatewayUnavailable(error_id) from exc

        logger.info("stripe_session_created", session_id=session.id)
        return CheckoutSession(session_id=session.id, redirect_url=session.url)

    def get_session(self, session_id: str) -> SessionStatus | None:
        try:
            session = _plain(stripe.checkout.Session.retrieve(session_id, api_key=self.api_key))
        except stripe.InvalidRequestError as exc:
            logger.warning("stripe_session_unknown", session_id=session_id, error=str(exc))
            return None
        except stripe.StripeError as exc:
            error_id = new_error_id()
            logger.error("stripe_session_retrieve_failed", error_id=error_id, session_id=session_id, error=str(exc))
            raise GatewayUnavailable(error_id) from exc

        customer_details = session.get("customer_details") or {}
        shipping = (
            session.get("shipping_details")
            or (session.get("collected_information") or {}).get("shipping_details")
            or (
                {"name": customer_details.get("name"), "address": customer_details["address"]}
                if customer_details.get("address")
                else None
            )
        )
        amount_total = session.get("amount_total")

        return SessionStatus(
            session_id=session["id"],
            payment_status=session.get("payment_status") or "unpaid",
            amount_total=round(amount_total / 100, 2) if amount_total is not None else None,
            customer_email=customer_details.get("email") or session.get("customer_email"),
            shipping_details=shipping,
            metadata=session.get("metadata") or {},
        )
