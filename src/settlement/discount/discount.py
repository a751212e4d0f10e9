"""Discount aggregate — a promotional code with a bounded number of uses.

``usage_count`` moves only through ``redeem`` and ``release``. Concurrent
redemptions are serialized by the aggregate version: whichever save lands
second fails with ``ExpectedVersionError`` and must re-read.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from settlement.discount.events import DiscountCreated, DiscountDeactivated, DiscountRedeemed, DiscountReleased
from settlement.domain import settlement


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def _aware(moment):
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


@settlement.aggregate
class Discount:
    code = String(required=True, max_length=50, unique=True)
    discount_type = String(required=True, choices=DiscountType)
    value = Float(required=True, min_value=0.0)
    minimum_purchase = Float(default=0.0, min_value=0.0)
    usage_limit = Integer(min_value=0)  # None means unlimited
    usage_count = Integer(default=0, min_value=0)
    active = Boolean(default=True)
    valid_from = DateTime()
    valid_until = DateTime()

    @invariant.post
    def usage_must_stay_within_limit(self):
        if self.usage_limit is not None and (self.usage_count or 0) > self.usage_limit:
            raise ValidationError({"usage_count": ["Discount usage cannot exceed its usage limit"]})

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and self.value > 100:
            raise ValidationError({"value": ["Percentage discounts cannot exceed 100"]})

    @classmethod
    def create(
        cls,
        code,
        discount_type,
        value,
        minimum_purchase=0.0,
        usage_limit=None,
        valid_from=None,
        valid_until=None,
    ):
        if valid_from and valid_until and _aware(valid_until) <= _aware(valid_from):
            raise ValidationError({"valid_until": ["Discount must end after it starts"]})

        discount = cls(
            code=code.strip().upper(),
            discount_type=discount_type,
            value=value,
            minimum_purchase=minimum_purchase or 0.0,
            usage_limit=usage_limit,
            usage_count=0,
            active=True,
            valid_from=valid_from,
            valid_until=valid_until,
        )
        discount.raise_(
            DiscountCreated(
                discount_id=str(discount.id),
                code=discount.code,
                discount_type=discount_type,
                value=value,
                usage_limit=usage_limit,
            )
        )
        return discount

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and (self.usage_count or 0) >= self.usage_limit

    def rejection_reason(self, subtotal, now=None):
        """Return why this code cannot be applied to ``subtotal``, or None."""
        now = now or datetime.now(UTC)

        if not self.active:
            return "Invalid discount code"
        if self.valid_from and now < _aware(self.valid_from):
            return "Discount code is not yet valid"
        if self.valid_until and now > _aware(self.valid_until):
            return "Discount code has expired"
        if subtotal < (self.minimum_purchase or 0.0):
            return f"Minimum purchase of ${self.minimum_purchase:.2f} required"
        if self.is_exhausted:
            return "Discount code usage limit reached"
        return None

    def amount_for(self, subtotal) -> float:
        if self.discount_type == DiscountType.PERCENTAGE.value:
            amount = subtotal * self.value / 100
        else:
            amount = self.value
        return round(min(amount, subtotal), 2)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def redeem(self, subtotal, now=None) -> float:
        """Consume one use of the code and return the discount amount."""
        reason = self.rejection_reason(subtotal, now)
        if reason:
            raise ValidationError({"code": [reason]})

        amount = self.amount_for(subtotal)
        self.usage_count = (self.usage_count or 0) + 1

        self.raise_(
            DiscountRedeemed(
                discount_id=str(self.id),
                code=self.code,
                subtotal=subtotal,
                discount_amount=amount,
                usage_count=self.usage_count,
            )
        )
        return amount

    def release(self):
        """Give one use back. Never goes below zero."""
        self.usage_count = max((self.usage_count or 0) - 1, 0)

        self.raise_(
            DiscountReleased(
                discount_id=str(self.id),
                code=self.code,
                usage_count=self.usage_count,
            )
        )

    def deactivate(self):
        if not self.active:
            raise ValidationError({"active": ["Discount is already inactive"]})

        self.active = False
        self.raise_(DiscountDeactivated(discount_id=str(self.id), code=self.code))
