"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- StripeGateway when STRIPE_SECRET_KEY is configured
"""

from settlement.config import get_settings
from settlement.gateway.fake_adapter import FakeGateway
from settlement.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.stripe_secret_key:
            from settlement.gateway.stripe_adapter import StripeGateway

            _current_gateway = StripeGateway(
                api_key=settings.stripe_secret_key,
                timeout_seconds=settings.gateway_timeout_seconds,
            )
        else:
            _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
