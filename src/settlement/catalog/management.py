"""Catalog management — register products, add variants, restock."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from settlement.catalog.product import Product
from settlement.domain import settlement


@settlement.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=255)
    description = Text()
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)


@settlement.command(part_of="Product")
class AddVariant:
    product_id = Identifier(required=True)
    size = String(max_length=50)
    color = String(max_length=50)
    price_adjustment = Float(default=0.0)
    stock = Integer(default=0, min_value=0)


@settlement.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)


@settlement.command_handler(part_of=Product)
class ManageCatalogHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            name=command.name,
            price=command.price,
            stock=command.stock or 0,
            description=command.description,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(AddVariant)
    def add_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        variant = product.add_variant(
            size=command.size,
            color=command.color,
            price_adjustment=command.price_adjustment or 0.0,
            stock=command.stock or 0,
        )
        repo.add(product)
        return str(variant.id)

    @handle(RestockProduct)
    def restock_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.restock(command.quantity, variant_id=command.variant_id)
        repo.add(product)
