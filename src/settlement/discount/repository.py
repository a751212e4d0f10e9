"""Repository for the Discount aggregate."""

from settlement.discount.discount import Discount
from settlement.domain import settlement


@settlement.repository(part_of=Discount)
class DiscountRepository:
    def find_by_code(self, code: str) -> Discount | None:
        """Codes are matched case-insensitively; they are stored upper-case."""
        if not code:
            return None
        results = self._dao.query.filter(code=code.strip().upper()).all().items
        return results[0] if results else None
