"""Payment gateway port (abstract interface).

Gateway settlement happens in two hops: a hosted checkout session is created
before any order exists, and the session is read back once the customer
returns from paying. Adapters raise ``GatewayUnavailable`` for transport
failures so the caller fails closed before writing anything.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class LineItem:
    """One line of a hosted checkout page. ``unit_amount`` is in currency units."""

    name: str
    unit_amount: float
    quantity: int
    description: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    redirect_url: str


@dataclass(frozen=True)
class SessionStatus:
    session_id: str
    payment_status: str
    amount_total: float | None = None
    customer_email: str | None = None
    shipping_details: dict | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_session(
        self,
        line_items: list[LineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict,
        currency: str = "USD",
        customer_email: str | None = None,
    ) -> CheckoutSession:
        """Open a hosted checkout session for the given lines."""
        ...

    @abstractmethod
    def get_session(self, session_id: str) -> SessionStatus | None:
        """Read a session back; ``None`` when the gateway does not know it."""
        ...
