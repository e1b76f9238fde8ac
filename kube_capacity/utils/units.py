from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Any

from kube_capacity.models.quantity import Quantity, QuantityFormat


_QUANTITY_PATTERN = re.compile(
    r"^(?P<sign>[+-]?)(?P<num>\d+(?:\.\d*)?|\.\d+)(?P<suffix>[a-zA-Z]*(?:[+-]?\d+)?)$"
)
_EXPONENT_PATTERN = re.compile(r"^[eE](?P<exp>[+-]?\d+)$")

_BINARY_SUFFIXES = {"Ki": 10, "Mi": 20, "Gi": 30, "Ti": 40, "Pi": 50, "Ei": 60}
_DECIMAL_SUFFIXES = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}
_BINARY_BY_POWER = ["", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei"]
_DECIMAL_BY_EXPONENT = {exp: suffix for suffix, exp in _DECIMAL_SUFFIXES.items()}

_NANO = 10 ** 9
_MILLI = 1000
_GIB = 2 ** 30
_GB = 10 ** 9


def parse_quantity(value: str | int | float) -> Quantity:
    """Parse a cluster resource quantity into an exact ``Quantity``.

    - 500m => 1/2 (DecimalSI)
    - 2036452Ki => 2085326848 (BinarySI)
    - 1e3 => 1000 (DecimalExponent)

    Precision finer than one nano unit is rounded up.
    """
    if isinstance(value, bool):
        raise ValueError(f"Unknown quantity: {value!r}")
    s = str(value).strip()
    m = _QUANTITY_PATTERN.match(s)
    if not m:
        raise ValueError(f"Unknown quantity: {value!r}")

    try:
        number = Fraction(Decimal(m.group("num")))
    except InvalidOperation as e:  # pragma: no cover - guarded by regex
        raise ValueError(f"Unknown quantity: {value!r}") from e
    suffix = m.group("suffix")

    if suffix in _BINARY_SUFFIXES:
        amount = number * (2 ** _BINARY_SUFFIXES[suffix])
        fmt = QuantityFormat.BINARY_SI
    elif suffix in _DECIMAL_SUFFIXES:
        amount = number * Fraction(10) ** _DECIMAL_SUFFIXES[suffix]
        fmt = QuantityFormat.DECIMAL_SI
    else:
        em = _EXPONENT_PATTERN.match(suffix)
        if not em:
            raise ValueError(f"Unknown quantity suffix in {value!r}")
        amount = number * Fraction(10) ** int(em.group("exp"))
        fmt = QuantityFormat.DECIMAL_EXPONENT

    if m.group("sign") == "-":
        amount = -amount
    amount = Fraction(math.ceil(amount * _NANO), _NANO)
    return Quantity(amount, fmt)


def format_quantity(q: Quantity) -> str:
    """Render ``q`` in canonical wire form.

    BinarySI picks the largest power-of-1024 suffix that keeps the mantissa
    integral and falls back to DecimalSI below 1024 or for fractional
    amounts. DecimalSI and DecimalExponent pick the largest exponent (a
    multiple of 3) that keeps the mantissa integral.
    """
    if q.amount == 0:
        return "0"

    fmt = q.format or QuantityFormat.DECIMAL_SI
    if fmt is QuantityFormat.BINARY_SI:
        if -1024 < q.amount < 1024 or q.amount.denominator != 1:
            fmt = QuantityFormat.DECIMAL_SI
        else:
            mantissa = int(q.amount)
            power = 0
            while mantissa % 1024 == 0 and power < len(_BINARY_BY_POWER) - 1:
                mantissa //= 1024
                power += 1
            return f"{mantissa}{_BINARY_BY_POWER[power]}"

    mantissa = math.ceil(q.amount * _NANO)
    exponent = -9
    while mantissa % 1000 == 0 and exponent < 18:
        mantissa //= 1000
        exponent += 3

    if fmt is QuantityFormat.DECIMAL_EXPONENT:
        return str(mantissa) if exponent == 0 else f"{mantissa}e{exponent}"
    return f"{mantissa}{_DECIMAL_BY_EXPONENT[exponent]}"


def coerce_quantity(value: Any) -> Quantity:
    """Accept a ``Quantity`` or anything ``parse_quantity`` understands."""
    if isinstance(value, Quantity):
        return value
    return parse_quantity(value)


def add(a: Quantity, b: Quantity) -> Quantity:
    return a + b


def subtract(a: Quantity, b: Quantity) -> Quantity:
    """``a - b``; the result may be negative (over-commitment)."""
    return a - b


def to_cores(cpu: Quantity) -> float:
    """Millicores (rounded up) to cores."""
    return cpu.milli_value() / _MILLI


def to_gib(memory: Quantity) -> float:
    """Bytes to binary gibibytes (2^30)."""
    return memory.value() / _GIB


def to_gb(storage: Quantity) -> float:
    """Bytes to decimal gigabytes (10^9).

    Ephemeral storage is reported in GB while memory uses GiB; both
    conventions are part of the published output.
    """
    return storage.value() / _GB
