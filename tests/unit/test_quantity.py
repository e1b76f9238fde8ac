from __future__ import annotations

from fractions import Fraction

from kube_capacity.models.quantity import Quantity, QuantityFormat
from kube_capacity.utils.units import parse_quantity


def test_addition_is_exact():
    total = Quantity()
    for _ in range(10):
        total = total + parse_quantity("100m")
    assert total.amount == 1
    assert total == parse_quantity("1")


def test_empty_quantity_adopts_first_format():
    total = Quantity() + parse_quantity("1Gi")
    assert total.format is QuantityFormat.BINARY_SI
    total = total + parse_quantity("1G")
    assert total.format is QuantityFormat.BINARY_SI


def test_equality_ignores_format():
    assert Quantity(Fraction(1024), QuantityFormat.BINARY_SI) == Quantity(Fraction(1024), QuantityFormat.DECIMAL_SI)
    assert hash(parse_quantity("1Ki")) == hash(parse_quantity("1024"))


def test_milli_value_and_value_round_up():
    q = Quantity(Fraction(1, 3))
    assert q.milli_value() == 334
    assert q.value() == 1
    assert Quantity(Fraction(-3, 2)).value() == -1


def test_negation_and_zero():
    q = parse_quantity("250m")
    assert (-q).amount == Fraction(-1, 4)
    assert Quantity.zero(QuantityFormat.BINARY_SI).is_zero()
    assert (q - q).is_zero()
