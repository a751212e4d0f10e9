"""Request context passed explicitly into every settlement call."""

from dataclasses import dataclass, field
from uuid import uuid4


def new_correlation_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class SettlementContext:
    customer_id: str | None = None
    customer_email: str | None = None
    client_address: str | None = None
    correlation_id: str = field(default_factory=new_correlation_id)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.customer_id)

    @property
    def rate_limit_identity(self) -> str:
        """Customers are limited by id, guests by client address."""
        if self.customer_id:
            return f"customer:{self.customer_id}"
        return f"ip:{self.client_address or 'unknown'}"
