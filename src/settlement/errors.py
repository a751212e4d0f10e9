"""Settlement error taxonomy.

Client data errors carry their detail verbatim. Gateway and persistence
errors carry a generic message and an opaque ``error_id`` that is logged
alongside the underlying exception.
"""

from uuid import uuid4


def new_error_id() -> str:
    return f"err-{uuid4().hex[:12]}"


class SettlementError(Exception):
    kind = "settlement_error"
    status_code = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, **self.details}


# ---------------------------------------------------------------------------
# Client data errors (400): reported synchronously, never retried
# ---------------------------------------------------------------------------
class ClientDataError(SettlementError):
    kind = "client_data_error"
    status_code = 400


class PriceMismatch(ClientDataError):
    kind = "price_mismatch"

    def __init__(self, product_id: str, expected: float, submitted: float):
        super().__init__(
            "Price mismatch detected. Please refresh your cart.",
            product_id=str(product_id),
            expected_price=expected,
            submitted_price=submitted,
        )


class InsufficientStock(ClientDataError):
    kind = "insufficient_stock"

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}",
            available=available,
            requested=requested,
        )


class InvalidProduct(ClientDataError):
    kind = "invalid_product"

    def __init__(self, product_id: str, variant_id: str | None = None):
        message = f"Product {product_id} not found" if variant_id is None else f"Product variant {variant_id} not found"
        super().__init__(message, product_id=str(product_id))


class InvalidAddress(ClientDataError):
    kind = "invalid_address"


class EmptyCart(ClientDataError):
    kind = "empty_cart"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class DiscountRejected(SettlementError):
    kind = "discount_rejected"
    status_code = 400


class RateLimited(SettlementError):
    kind = "rate_limited"
    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__("Too many requests. Please try again later.", retry_after=retry_after)
        self.retry_after = retry_after


# ---------------------------------------------------------------------------
# Gateway errors
# ---------------------------------------------------------------------------
class GatewayError(SettlementError):
    kind = "gateway_error"
    status_code = 502


class GatewayDeclined(GatewayError):
    kind = "gateway_declined"
    status_code = 402

    def __init__(self, payment_status: str):
        super().__init__("Payment not completed", payment_status=payment_status)
        self.payment_status = payment_status


class GatewayUnavailable(GatewayError):
    kind = "gateway_unavailable"
    status_code = 503
    retryable = True

    def __init__(self, error_id: str | None = None):
        error_id = error_id or new_error_id()
        super().__init__("Payment provider is unavailable. Please try again.", error_id=error_id)
        self.error_id = error_id


# ---------------------------------------------------------------------------
# System errors
# ---------------------------------------------------------------------------
class PersistenceError(SettlementError):
    kind = "persistence_error"
    status_code = 500

    def __init__(self, error_id: str | None = None):
        error_id = error_id or new_error_id()
        super().__init__("Failed to create order", error_id=error_id)
        self.error_id = error_id


class SettlementInProgress(SettlementError):
    """Another request holds the settlement claim and has not produced its order yet."""

    kind = "settlement_in_progress"
    status_code = 409
    retryable = True

    def __init__(self, settlement_key: str):
        super().__init__("Payment is already being processed. Please try again shortly.")
        self.settlement_key = settlement_key


class NotificationError(SettlementError):
    """Raised by dispatchers; the orchestrator logs and swallows it."""

    kind = "notification_error"


class AuthenticationRequired(SettlementError):
    kind = "authentication_required"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class SessionOwnershipMismatch(SettlementError):
    kind = "session_ownership_mismatch"
    status_code = 403

    def __init__(self):
        super().__init__("Checkout session belongs to another customer")
