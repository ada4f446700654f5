"""Scaled-integer fixed-point values.

All quantities, prices and values in the simulator are FixedPoint: a
non-negative integer numerator over an implicit scale of 10**18, the same
representation token balances use on-chain. Multiplication and division
rescale and truncate toward zero, matching the ledger's own arithmetic.

Decimal is only used at the edges (config parsing, records, logs) and the
conversion in both directions is exact.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from slippagesim.errors import Underflow

DECIMALS = 18
SCALE = 10**DECIMALS


def decimal_to_raw(value: Any) -> int:
    """Convert a Decimal-like value to a signed scaled integer.

    Accepts Decimal, str and int. Floats are rejected: binary floating
    point never enters valuation arithmetic.

    Raises:
        ValueError: If the value is not finite, is a float, or carries
            more than 18 fractional digits.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Cannot convert {type(value).__name__} to fixed-point")
    if isinstance(value, int):
        return value * SCALE
    if isinstance(value, str):
        try:
            value = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Invalid decimal string: {value!r}") from exc
    if not isinstance(value, Decimal):
        raise ValueError(f"Cannot convert {type(value).__name__} to fixed-point")
    if not value.is_finite():
        raise ValueError(f"Non-finite value: {value}")

    sign, digits, exponent = value.as_tuple()
    coefficient = int("".join(str(d) for d in digits)) if digits else 0
    shift = int(exponent) + DECIMALS
    if shift >= 0:
        raw = coefficient * 10**shift
    else:
        raw, remainder = divmod(coefficient, 10**-shift)
        if remainder:
            raise ValueError(f"{value} has more than {DECIMALS} fractional digits")
    return -raw if sign else raw


def raw_to_decimal(raw: int) -> Decimal:
    """Render a signed scaled integer as an exact Decimal without trailing zeros."""
    sign = "-" if raw < 0 else ""
    whole, frac = divmod(abs(raw), SCALE)
    frac_digits = f"{frac:0{DECIMALS}d}".rstrip("0")
    if frac_digits:
        return Decimal(f"{sign}{whole}.{frac_digits}")
    return Decimal(f"{sign}{whole}")


@dataclass(frozen=True, order=True)
class FixedPoint:
    """Non-negative fixed-point value with 18 decimals."""

    raw: int

    def __post_init__(self) -> None:
        if isinstance(self.raw, bool) or not isinstance(self.raw, int):
            raise TypeError(f"raw must be int, got {type(self.raw).__name__}")
        if self.raw < 0:
            raise ValueError(f"FixedPoint cannot be negative, got raw={self.raw}")

    @classmethod
    def from_raw(cls, raw: int) -> FixedPoint:
        return cls(raw)

    @classmethod
    def from_units(cls, units: int) -> FixedPoint:
        """Whole units, e.g. from_units(100) == 100.0."""
        return cls(units * SCALE)

    @classmethod
    def from_decimal(cls, value: Any) -> FixedPoint:
        """Parse a Decimal, str or int exactly.

        Raises:
            ValueError: On floats, negatives, or excess precision.
        """
        raw = decimal_to_raw(value)
        if raw < 0:
            raise ValueError(f"FixedPoint cannot be negative, got {value}")
        return cls(raw)

    def to_decimal(self) -> Decimal:
        return raw_to_decimal(self.raw)

    @property
    def is_zero(self) -> bool:
        return self.raw == 0

    def __add__(self, other: object) -> FixedPoint:
        if not isinstance(other, FixedPoint):
            return NotImplemented
        return FixedPoint(self.raw + other.raw)

    def __sub__(self, other: object) -> FixedPoint:
        if not isinstance(other, FixedPoint):
            return NotImplemented
        if other.raw > self.raw:
            raise Underflow(f"{self} - {other} would be negative")
        return FixedPoint(self.raw - other.raw)

    def mul(self, other: FixedPoint) -> FixedPoint:
        """Multiply then rescale: self * other / SCALE, truncated."""
        return FixedPoint(self.raw * other.raw // SCALE)

    def div(self, other: FixedPoint) -> FixedPoint:
        """Divide then rescale: self * SCALE / other, truncated.

        Raises:
            ZeroDivisionError: If other is zero.
        """
        if other.raw == 0:
            raise ZeroDivisionError(f"{self} / 0")
        return FixedPoint(self.raw * SCALE // other.raw)

    def scale_by(self, factor: int) -> FixedPoint:
        """Multiply by a non-negative integer factor (exact)."""
        if factor < 0:
            raise ValueError(f"factor must be non-negative, got {factor}")
        return FixedPoint(self.raw * factor)

    def divide_by(self, divisor: int) -> FixedPoint:
        """Divide by a positive integer, truncated."""
        if divisor <= 0:
            raise ZeroDivisionError(f"divisor must be positive, got {divisor}")
        return FixedPoint(self.raw // divisor)

    def __str__(self) -> str:
        return str(self.to_decimal())

    def __repr__(self) -> str:
        return f"FixedPoint('{self}')"


ZERO = FixedPoint(0)
ONE = FixedPoint(SCALE)
