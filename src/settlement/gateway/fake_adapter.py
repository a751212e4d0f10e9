"""Configurable fake payment gateway for development and testing.

Sessions live in memory. A test (or a developer poking the API) opens a
session through the normal checkout flow and then calls ``complete_payment``
to play the part of the customer paying on the hosted page.
"""

from uuid import uuid4

from settlement.errors import GatewayUnavailable
from settlement.gateway.port import CheckoutSession, LineItem, PaymentGateway, SessionStatus

DEFAULT_SHIPPING_DETAILS = {
    "name": "Test Customer",
    "address": {
        "line1": "1 Market Street",
        "line2": None,
        "city": "San Francisco",
        "state": "CA",
        "postal_code": "94105",
        "country": "US",
    },
}


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.available: bool = True
        self.sessions: dict[str, dict] = {}
        self.calls: list[dict] = []

    def configure(self, available: bool = True) -> None:
        """An unavailable gateway fails every call like a network outage."""
        self.available = available

    def _check_available(self) -> None:
        if not self.available:
            raise GatewayUnavailable()

    def create_session(
        self,
        line_items: list[LineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict,
        currency: str = "USD",
        customer_email: str | None = None,
    ) -> CheckoutSession:
        self.calls.append(
            {
                "method": "create_session",
                "line_items": list(line_items),
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": dict(metadata),
                "currency": currency,
                "customer_email": customer_email,
            }
        )
        self._check_available()

        session_id = f"cs_test_{uuid4().hex}"
        self.sessions[session_id] = {
            "payment_status": "unpaid",
            "amount_total": round(sum(item.unit_amount * item.quantity for item in line_items), 2),
            "customer_email": customer_email,
            "shipping_details": None,
            "metadata": dict(metadata),
        }
        return CheckoutSession(
            session_id=session_id,
            redirect_url=f"https://checkout.fake-gateway.test/pay/{session_id}",
        )

    def get_session(self, session_id: str) -> SessionStatus | None:
        self.calls.append({"method": "get_session", "session_id": session_id})
        self._check_available()

        session = self.sessions.get(session_id)
        if session is None:
            return None
        return SessionStatus(session_id=session_id, **session)

    def complete_payment(self, session_id, shipping_details=DEFAULT_SHIPPING_DETAILS, payment_status="paid"):
        """Simulate the customer finishing (or abandoning) the hosted page."""
        session = self.sessions[session_id]
        session["payment_status"] = payment_status
        session["shipping_details"] = shipping_details
