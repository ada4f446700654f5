"""Basket valuation.

value = sum(quantity_i * price_i) over the basket's components, summed in
identifier order so totals are reproducible to the last wei.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from slippagesim.errors import PriceUnavailable
from slippagesim.fixed_point import ZERO, FixedPoint

if TYPE_CHECKING:
    from slippagesim.basket import Basket
    from slippagesim.pricing.aggregator import PriceAggregator

logger = logging.getLogger(__name__)


class BasketValuator:
    """Values a basket with prices fetched fresh on every call."""

    def __init__(self, aggregator: PriceAggregator) -> None:
        self._aggregator = aggregator

    async def value_of(self, basket: Basket) -> FixedPoint:
        """Total basket value in the reference currency.

        Fans out one price lookup per component and joins on all of them.
        A basket's value is all-or-nothing.

        Raises:
            PriceUnavailable: For the first failing component in identifier
                order, once every lookup has settled.
        """
        components = basket.sorted_components()
        if not components:
            return ZERO

        prices = await asyncio.gather(
            *(self._aggregator.price_of(c) for c in components),
            return_exceptions=True,
        )

        total = ZERO
        for component, price in zip(components, prices, strict=True):
            if isinstance(price, PriceUnavailable):
                raise price
            if isinstance(price, BaseException):
                raise PriceUnavailable(
                    component.component_id, "aggregator", f"{type(price).__name__}: {price}"
                ) from price
            total = total + component.quantity.mul(price)

        logger.debug(
            "Basket valued",
            extra={"components": len(components), "value": str(total)},
        )
        return total
