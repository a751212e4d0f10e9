"""Product aggregate root with the Variant entity.

Settlement reads products through the catalog oracle and writes to them only
when inventory is adjusted after an order is placed.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String, Text

from settlement.catalog.events import ProductRegistered, StockDecremented, StockRestocked, VariantAdded
from settlement.domain import settlement


@settlement.entity(part_of="Product")
class Variant:
    """A size/color combination with its own stock and a price delta."""

    size = String(max_length=50)
    color = String(max_length=50)
    price_adjustment = Float(default=0.0)
    stock = Integer(default=0, min_value=0)
    active = Boolean(default=True)

    @property
    def attributes(self) -> dict:
        return {key: value for key, value in (("size", self.size), ("color", self.color)) if value}


@settlement.aggregate
class Product:
    name = String(required=True, max_length=255)
    description = Text()
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    active = Boolean(default=True)
    variants = HasMany(Variant)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def variant_prices_must_not_be_negative(self):
        for variant in self.variants:
            if self.price + (variant.price_adjustment or 0.0) < 0:
                raise ValidationError({"variants": ["Variant price adjustment cannot make the price negative"]})

    @classmethod
    def register(cls, name, price, stock=0, description=None):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            description=description,
            price=price,
            stock=stock,
            active=True,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                price=price,
                stock=stock,
                registered_at=now,
            )
        )
        return product

    def find_variant(self, variant_id):
        return next((v for v in self.variants if str(v.id) == str(variant_id)), None)

    def add_variant(self, size=None, color=None, price_adjustment=0.0, stock=0):
        variant = Variant(size=size, color=color, price_adjustment=price_adjustment, stock=stock)
        self.add_variants(variant)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantAdded(
                product_id=str(self.id),
                variant_id=str(variant.id),
                size=size,
                color=color,
                price_adjustment=price_adjustment,
                stock=stock,
            )
        )
        return variant

    def restock(self, quantity, variant_id=None):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Restock quantity must be positive"]})

        holder = self._stock_holder(variant_id)
        holder.stock += quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockRestocked(
                product_id=str(self.id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                new_stock=holder.stock,
            )
        )

    def decrement_stock(self, quantity, variant_id=None):
        """Take ``quantity`` units off the shelf, stopping at zero.

        Returns ``(applied, clamped)``.
        """
        holder = self._stock_holder(variant_id)
        current = holder.stock or 0
        applied = min(quantity, current)
        clamped = applied < quantity

        holder.stock = current - applied
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockDecremented(
                product_id=str(self.id),
                variant_id=str(variant_id) if variant_id else None,
                requested=quantity,
                applied=applied,
                new_stock=holder.stock,
                clamped=clamped,
            )
        )
        return applied, clamped

    def _stock_holder(self, variant_id):
        if variant_id is None:
            return self
        variant = self.find_variant(variant_id)
        if variant is None:
            raise ValidationError({"variant_id": [f"Variant {variant_id} not found"]})
        return variant
