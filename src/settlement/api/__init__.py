"""Settlement domain API package."""

from settlement.api.errors import register_settlement_error_handler
from settlement.api.middleware import register_request_context
from settlement.api.routes import cart_router, catalog_router, checkout_router, order_router

__all__ = [
    "checkout_router",
    "order_router",
    "cart_router",
    "catalog_router",
    "register_settlement_error_handler",
    "register_request_context",
]
