"""ShippingMethod aggregate — a named delivery option with a flat cost."""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Integer, String

from settlement.domain import settlement


@settlement.aggregate
class ShippingMethod:
    name = String(required=True, max_length=100)
    cost = Float(required=True, min_value=0.0)
    estimated_days_min = Integer(min_value=0)
    estimated_days_max = Integer(min_value=0)
    active = Boolean(default=True)

    @invariant.post
    def delivery_window_must_be_ordered(self):
        if (
            self.estimated_days_min is not None
            and self.estimated_days_max is not None
            and self.estimated_days_min > self.estimated_days_max
        ):
            raise ValidationError({"estimated_days_max": ["Maximum delivery days cannot be less than minimum"]})

    def deactivate(self):
        self.active = False
