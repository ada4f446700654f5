"""Slippage evaluator tests."""

from __future__ import annotations

from decimal import Decimal

import pytest

from slippagesim.errors import DegenerateValuation
from slippagesim.fixed_point import ZERO, FixedPoint
from slippagesim.slippage import SlippageEvaluator, slippage_ratio_raw


def fp(value: str) -> FixedPoint:
    return FixedPoint.from_decimal(value)


class TestEvaluate:
    """Test ratio computation and tolerance classification."""

    @pytest.mark.parametrize("tolerance", ["0", "0.005", "0.02", "1"])
    @pytest.mark.parametrize("value", ["0.000000000000000001", "1", "100", "123456.789"])
    def test_equal_values_zero_ratio(self, tolerance: str, value: str) -> None:
        result = SlippageEvaluator(tolerance).evaluate(fp(value), fp(value))
        assert result.ratio == Decimal("0")
        assert result.within_tolerance is True

    def test_output_below_input(self) -> None:
        """100 in, 99 out: ratio 0.0101..., fails 0.5%, passes 2%."""
        strict = SlippageEvaluator("0.005").evaluate(fp("100"), fp("99"))
        loose = SlippageEvaluator("0.02").evaluate(fp("100"), fp("99"))

        assert strict.ratio == Decimal("0.010101010101010101")
        assert strict.within_tolerance is False
        assert loose.ratio == strict.ratio
        assert loose.within_tolerance is True

    def test_output_above_input_negative_ratio(self) -> None:
        result = SlippageEvaluator("0.005").evaluate(fp("99"), fp("100"))
        assert result.ratio == Decimal("-0.01")
        assert result.within_tolerance is True

    def test_boundary_is_inclusive(self) -> None:
        result = SlippageEvaluator("0.01").evaluate(fp("101"), fp("100"))
        assert result.ratio == Decimal("0.01")
        assert result.within_tolerance is True

    def test_max_slippage_exposed(self) -> None:
        assert SlippageEvaluator("0.005").max_slippage == Decimal("0.005")

    def test_rejects_float_tolerance(self) -> None:
        with pytest.raises(ValueError):
            SlippageEvaluator(0.005)


class TestDegenerateValuation:
    """Zero output value is always a defect."""

    @pytest.mark.parametrize("input_value", ["0", "1", "100000000"])
    def test_zero_output_raises(self, input_value: str) -> None:
        with pytest.raises(DegenerateValuation):
            SlippageEvaluator("0.005").evaluate(fp(input_value), ZERO)

    def test_raw_helper_raises(self) -> None:
        with pytest.raises(DegenerateValuation):
            slippage_ratio_raw(fp("1"), ZERO)
