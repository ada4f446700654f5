"""Component pricing and basket valuation."""

from slippagesim.pricing.aggregator import PriceAggregator, fetch_price
from slippagesim.pricing.sources import PriceSource
from slippagesim.pricing.valuator import BasketValuator

__all__ = [
    "BasketValuator",
    "PriceAggregator",
    "PriceSource",
    "fetch_price",
]
