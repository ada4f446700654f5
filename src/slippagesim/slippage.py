"""Slippage evaluation.

ratio = input_value / output_value - 1

Positive ratio: the basket is worth less than what was deposited.
Negative ratio: the basket is worth more. Both are valid outcomes.
The ratio is computed on the scaled integers and rendered as an exact
Decimal, so two runs on the same inputs agree to the last digit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from slippagesim.errors import DegenerateValuation
from slippagesim.fixed_point import SCALE, FixedPoint, decimal_to_raw, raw_to_decimal

DEFAULT_MAX_SLIPPAGE = Decimal("0.005")


@dataclass(frozen=True)
class SlippageResult:
    """Outcome of one evaluation."""

    ratio_raw: int
    within_tolerance: bool

    @property
    def ratio(self) -> Decimal:
        return raw_to_decimal(self.ratio_raw)


def slippage_ratio_raw(input_value: FixedPoint, output_value: FixedPoint) -> int:
    """Signed scaled ratio input/output - 1, with the quotient truncated at 18 decimals.

    Raises:
        DegenerateValuation: If output_value is zero.
    """
    if output_value.is_zero:
        raise DegenerateValuation(f"output value is zero (input value {input_value})")
    return input_value.raw * SCALE // output_value.raw - SCALE


class SlippageEvaluator:
    """Classifies slippage against a maximum acceptable ratio."""

    def __init__(self, max_slippage: Any = DEFAULT_MAX_SLIPPAGE) -> None:
        """Initialize evaluator.

        Args:
            max_slippage: Maximum acceptable ratio (Decimal, str or int).
                Negative tolerances are accepted and demand a gain.
        """
        self._max_raw = decimal_to_raw(max_slippage)

    @property
    def max_slippage(self) -> Decimal:
        return raw_to_decimal(self._max_raw)

    def evaluate(self, input_value: FixedPoint, output_value: FixedPoint) -> SlippageResult:
        """Compare what went in with what came out.

        Raises:
            DegenerateValuation: If output_value is zero.
        """
        ratio_raw = slippage_ratio_raw(input_value, output_value)
        return SlippageResult(
            ratio_raw=ratio_raw,
            within_tolerance=ratio_raw <= self._max_raw,
        )
