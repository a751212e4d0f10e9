"""Pricing & cart validator — re-derives every price on the server.

Nothing a client says about price is trusted: the submitted unit price is
only compared against the catalog, never carried forward.
"""

from collections import defaultdict
from dataclasses import dataclass, field

import structlog

from settlement.catalog.oracle import CatalogOracle
from settlement.config import SettlementSettings, get_settings
from settlement.errors import ClientDataError, EmptyCart, InsufficientStock, PriceMismatch

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    variant_id: str | None = None
    client_price: float | None = None


@dataclass(frozen=True)
class ResolvedLine:
    product_id: str
    variant_id: str | None
    quantity: int
    unit_price: float
    product_name: str
    variant_attributes: dict = field(default_factory=dict)

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "product_name": self.product_name,
            "variant_attributes": self.variant_attributes,
        }


@dataclass(frozen=True)
class PricedCart:
    lines: tuple[ResolvedLine, ...]
    subtotal: float


class CartValidator:
    def __init__(self, oracle: CatalogOracle | None = None, settings: SettlementSettings | None = None):
        self.oracle = oracle or CatalogOracle()
        self.settings = settings or get_settings()

    def validate_cart(self, lines, enforce_stock=True) -> PricedCart:
        """Price ``lines`` against the catalog.

        With ``enforce_stock=False`` a shortfall is only logged; used once
        payment has already been taken, where the order must exist anyway.
        """
        if not lines:
            raise EmptyCart()

        resolved = []
        entries = {}
        requested = defaultdict(int)
        for line in lines:
            if line.quantity is None or line.quantity < 1:
                raise ClientDataError("Quantity must be a positive whole number")

            entry = self.oracle.get_price_and_stock(line.product_id, line.variant_id)

            if line.client_price is not None and abs(line.client_price - entry.unit_price) > self.settings.price_tolerance:
                logger.warning(
                    "price_mismatch",
                    product_id=str(line.product_id),
                    variant_id=line.variant_id,
                    submitted=line.client_price,
                    expected=entry.unit_price,
                )
                raise PriceMismatch(line.product_id, expected=entry.unit_price, submitted=line.client_price)

            # Lines repeating a product or variant draw on the same stock
            key = (entry.product_id, entry.variant_id)
            entries[key] = entry
            requested[key] += line.quantity

            resolved.append(
                ResolvedLine(
                    product_id=entry.product_id,
                    variant_id=entry.variant_id,
                    quantity=line.quantity,
                    unit_price=entry.unit_price,
                    product_name=entry.name,
                    variant_attributes=dict(entry.attributes),
                )
            )

        for key, quantity in requested.items():
            entry = entries[key]
            if quantity <= entry.stock:
                continue
            if enforce_stock:
                raise InsufficientStock(entry.name, available=entry.stock, requested=quantity)
            logger.warning(
                "stock_shortfall_accepted",
                product_id=entry.product_id,
                variant_id=entry.variant_id,
                available=entry.stock,
                requested=quantity,
            )

        subtotal = round(sum(line.unit_price * line.quantity for line in resolved), 2)
        return PricedCart(lines=tuple(resolved), subtotal=subtotal)
