"""Settlement settings read from the environment.

Protean infrastructure (providers, event store) is configured in
``domain.toml``; the knobs below are business settings of the settlement
pipeline and the adapters it talks to.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_list(name: str) -> tuple[str, ...]:
    value = os.getenv(name, "")
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class SettlementSettings:
    tax_rate: float = 0.08
    default_shipping_cost: float = 9.99
    free_shipping_threshold: float = 100.0
    price_tolerance: float = 0.01
    currency: str = "USD"
    discount_redeem_attempts: int = 3
    inventory_adjust_attempts: int = 10
    settlement_claim_lease_seconds: float = 60.0
    settlement_claim_wait_seconds: float = 5.0
    gateway_timeout_seconds: float = 10.0
    storefront_url: str = "http://localhost:3000"
    admin_emails: tuple[str, ...] = field(default_factory=tuple)
    stripe_secret_key: str | None = None
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "SettlementSettings":
        return cls(
            tax_rate=_env_float("SETTLEMENT_TAX_RATE", 0.08),
            default_shipping_cost=_env_float("SETTLEMENT_DEFAULT_SHIPPING", 9.99),
            free_shipping_threshold=_env_float("SETTLEMENT_FREE_SHIPPING_THRESHOLD", 100.0),
            price_tolerance=_env_float("SETTLEMENT_PRICE_TOLERANCE", 0.01),
            currency=os.getenv("SETTLEMENT_CURRENCY", "USD").upper(),
            discount_redeem_attempts=max(1, _env_int("SETTLEMENT_DISCOUNT_REDEEM_ATTEMPTS", 3)),
            inventory_adjust_attempts=max(1, _env_int("SETTLEMENT_INVENTORY_ADJUST_ATTEMPTS", 10)),
            settlement_claim_lease_seconds=_env_float("SETTLEMENT_CLAIM_LEASE", 60.0),
            settlement_claim_wait_seconds=_env_float("SETTLEMENT_CLAIM_WAIT", 5.0),
            gateway_timeout_seconds=_env_float("SETTLEMENT_GATEWAY_TIMEOUT", 10.0),
            storefront_url=os.getenv("SETTLEMENT_STOREFRONT_URL", "http://localhost:3000").rstrip("/"),
            admin_emails=_env_list("SETTLEMENT_ADMIN_EMAILS"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
            environment=(os.getenv("PROTEAN_ENV") or "development").lower(),
        )


@lru_cache(maxsize=1)
def get_settings() -> SettlementSettings:
    """Return the process-wide settings, read once from the environment."""
    return SettlementSettings.from_env()
