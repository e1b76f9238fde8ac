from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Optional


class QuantityFormat(str, Enum):
    DECIMAL_SI = "DecimalSI"
    BINARY_SI = "BinarySI"
    DECIMAL_EXPONENT = "DecimalExponent"


@dataclass(frozen=True, slots=True)
class Quantity:
    """Exact resource amount.

    ``amount`` is held as a ``Fraction`` so that summing millicores or bytes
    never drifts. ``format`` only affects how the amount is written back out
    (see ``kube_capacity.utils.units.format_quantity``) and is ignored by
    equality. A quantity without a format adopts the format of whatever is
    added to it, so an empty accumulator takes on the format of its first input.
    """

    amount: Fraction = Fraction(0)
    format: Optional[QuantityFormat] = field(default=None, compare=False)

    def __add__(self, other: "Quantity") -> "Quantity":
        if not isinstance(other, Quantity):
            return NotImplemented
        return Quantity(self.amount + other.amount, self.format or other.format)

    def __sub__(self, other: "Quantity") -> "Quantity":
        if not isinstance(other, Quantity):
            return NotImplemented
        return Quantity(self.amount - other.amount, self.format or other.format)

    def __neg__(self) -> "Quantity":
        return Quantity(-self.amount, self.format)

    def is_zero(self) -> bool:
        return self.amount == 0

    def milli_value(self) -> int:
        """Amount in thousandths, rounded up."""
        return math.ceil(self.amount * 1000)

    def value(self) -> int:
        """Amount in whole units, rounded up."""
        return math.ceil(self.amount)

    @classmethod
    def zero(cls, fmt: Optional[QuantityFormat] = None) -> "Quantity":
        return cls(Fraction(0), fmt)
