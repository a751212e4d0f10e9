"""Storefront settlement FastAPI application.

Processes settlement commands synchronously via HTTP. Every request runs
inside the settlement domain context with its correlation id bound to the
structured log context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the domain.toml overlay ("test", "production").
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from settlement.domain import settlement
from settlement.utils.logging import configure_logging

configure_logging()
settlement.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Settlement API",
    description="Checkout, payment confirmation and order settlement",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from settlement.api import (  # noqa: E402
    cart_router,
    catalog_router,
    checkout_router,
    order_router,
    register_request_context,
    register_settlement_error_handler,
)

register_request_context(app)

app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(cart_router)
app.include_router(catalog_router)

register_exception_handlers(app)
register_settlement_error_handler(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": settlement.name})
