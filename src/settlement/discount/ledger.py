"""Discount ledger — validates codes and redeems them atomically.

Redemption is a read-modify-write of ``Discount.usage_count`` inside its own
unit of work. Protean compares the aggregate version on save, so when two
settlements race for the last use of a code only one save lands; the loser
gets ``ExpectedVersionError``, re-reads, and now sees the code exhausted.
"""

from dataclasses import dataclass

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from settlement.config import SettlementSettings, get_settings
from settlement.discount.discount import Discount
from settlement.errors import DiscountRejected

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Redemption:
    discount_id: str
    code: str
    discount_amount: float


class DiscountLedger:
    def __init__(self, settings: SettlementSettings | None = None):
        self.settings = settings or get_settings()

    @property
    def _repository(self):
        return current_domain.repository_for(Discount)

    def _load(self, code) -> Discount:
        discount = self._repository.find_by_code(code)
        if discount is None:
            raise DiscountRejected("Invalid discount code")
        return discount

    def preview(self, code, subtotal) -> Redemption:
        """Validate ``code`` against ``subtotal`` without consuming a use."""
        discount = self._load(code)
        reason = discount.rejection_reason(subtotal)
        if reason:
            raise DiscountRejected(reason)
        return Redemption(
            discount_id=str(discount.id),
            code=discount.code,
            discount_amount=discount.amount_for(subtotal),
        )

    def redeem(self, code, subtotal) -> Redemption:
        attempts = self.settings.discount_redeem_attempts

        for attempt in range(1, attempts + 1):
            try:
                with UnitOfWork():
                    discount = self._load(code)
                    reason = discount.rejection_reason(subtotal)
                    if reason:
                        raise DiscountRejected(reason)

                    amount = discount.redeem(subtotal)
                    self._repository.add(discount)
            except ExpectedVersionError:
                logger.warning("discount_redeem_conflict", code=code, attempt=attempt, max_attempts=attempts)
                continue

            logger.info(
                "discount_redeemed",
                code=discount.code,
                discount_amount=amount,
                usage_count=discount.usage_count,
                usage_limit=discount.usage_limit,
            )
            return Redemption(discount_id=str(discount.id), code=discount.code, discount_amount=amount)

        logger.error("discount_redeem_exhausted_retries", code=code, attempts=attempts)
        raise DiscountRejected("Discount code could not be applied. Please try again.")

    def release(self, discount_id) -> None:
        """Compensate a redemption whose order was never created."""
        attempts = self.settings.discount_redeem_attempts

        for attempt in range(1, attempts + 1):
            try:
                with UnitOfWork():
                    discount = self._repository.get(discount_id)
                    discount.release()
                    self._repository.add(discount)
            except ObjectNotFoundError:
                logger.error("discount_release_missing", discount_id=discount_id)
                return
            except ExpectedVersionError:
                logger.warning("discount_release_conflict", discount_id=discount_id, attempt=attempt)
                continue

            logger.info("discount_released", discount_id=discount_id, usage_count=discount.usage_count)
            return

        logger.error("discount_release_failed", discount_id=discount_id, attempts=attempts)
