"""Settlement bounded context — turns shopping carts into durable orders.

Hosts the catalog oracle, discount ledger, shipping rate table, order and
cart aggregates, and the checkout orchestrator that ties the Direct and
Gateway-Deferred settlement paths together.
"""

import structlog
from protean.domain import Domain

settlement = Domain(name="settlement")

logger = structlog.get_logger(__name__)
