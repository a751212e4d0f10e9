"""Catalog oracle: the authoritative source of unit prices and stock."""

from dataclasses import dataclass, field

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from settlement.catalog.product import Product
from settlement.errors import InvalidProduct


@dataclass(frozen=True)
class CatalogEntry:
    product_id: str
    variant_id: str | None
    name: str
    unit_price: float
    stock: int
    attributes: dict = field(default_factory=dict)


class CatalogOracle:
    """Read-only accessor over Product aggregates.

    The authoritative unit price is the product price plus the variant's
    price adjustment. Stock is the variant stock when a variant is named,
    the product stock otherwise.
    """

    def get_price_and_stock(self, product_id, variant_id=None) -> CatalogEntry:
        try:
            product = current_domain.repository_for(Product).get(str(product_id))
        except ObjectNotFoundError:
            raise InvalidProduct(product_id) from None

        if not product.active:
            raise InvalidProduct(product_id)

        if variant_id is None:
            return CatalogEntry(
                product_id=str(product.id),
                variant_id=None,
                name=product.name,
                unit_price=round(product.price, 2),
                stock=product.stock or 0,
            )

        # A variant of some other product is treated as unknown
        variant = product.find_variant(variant_id)
        if variant is None or not variant.active:
            raise InvalidProduct(product_id, variant_id)

        return CatalogEntry(
            product_id=str(product.id),
            variant_id=str(variant.id),
            name=product.name,
            unit_price=round(product.price + (variant.price_adjustment or 0.0), 2),
            stock=variant.stock or 0,
            attributes=variant.attributes,
        )
