"""Inventory updater — takes an order's lines off the shelf.

Best-effort per line: a line that cannot be adjusted is logged and reported
but never undoes the order. Stock stops at zero. The order's
``inventory_status`` is flipped in the same unit of work, so running the
adjustment twice for one order changes nothing the second time.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from settlement.catalog.product import Product
from settlement.domain import settlement
from settlement.order.order import Order

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LineAdjustment:
    product_id: str
    variant_id: str | None
    requested: int
    applied: int
    success: bool
    clamped: bool = False
    error: str | None = None


@settlement.command(part_of="Order")
class AdjustInventory:
    order_id = Identifier(required=True)


@settlement.command_handler(part_of=Order)
class AdjustInventoryHandler:
    @handle(AdjustInventory)
    def adjust_inventory(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)

        if order.inventory_adjusted:
            logger.info(
                "inventory_already_adjusted",
                order_id=str(order.id),
                inventory_status=order.inventory_status,
            )
            return []

        product_repo = current_domain.repository_for(Product)
        products = {}
        adjustments = []

        for line in order.lines:
            product_id = str(line.product_id)
            variant_id = str(line.variant_id) if line.variant_id else None
            try:
                product = products.get(product_id) or product_repo.get(product_id)
                products[product_id] = product
                applied, clamped = product.decrement_stock(line.quantity, variant_id=variant_id)
            except (ObjectNotFoundError, ValidationError) as exc:
                logger.warning(
                    "inventory_line_failed",
                    order_id=str(order.id),
                    product_id=product_id,
                    variant_id=variant_id,
                    quantity=line.quantity,
                    error=str(exc),
                )
                adjustments.append(
                    LineAdjustment(
                        product_id=product_id,
                        variant_id=variant_id,
                        requested=line.quantity,
                        applied=0,
                        success=False,
                        error=str(exc),
                    )
                )
                continue

            if clamped:
                logger.warning(
                    "inventory_clamped_at_zero",
                    order_id=str(order.id),
                    product_id=product_id,
                    variant_id=variant_id,
                    requested=line.quantity,
                    applied=applied,
                )
            adjustments.append(
                LineAdjustment(
                    product_id=product_id,
                    variant_id=variant_id,
                    requested=line.quantity,
                    applied=applied,
                    success=True,
                    clamped=clamped,
                )
            )

        for product in products.values():
            product_repo.add(product)

        failed = sum(1 for adjustment in adjustments if not adjustment.success)
        order.record_inventory_adjustment(lines_adjusted=len(adjustments) - failed, lines_failed=failed)
        order_repo.add(order)

        logger.info(
            "inventory_adjusted",
            order_id=str(order.id),
            inventory_status=order.inventory_status,
            lines_adjusted=len(adjustments) - failed,
            lines_failed=failed,
        )
        return adjustments
