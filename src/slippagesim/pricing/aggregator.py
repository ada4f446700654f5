"""Composite component pricing.

A component's unit price is the product of two independent sub-prices:
the pool-implied exchange rate (e.g. a Curve metapool virtual price) and
the vault share price (e.g. a Yearn pricePerShare). Both are 18-decimal
fixed-point, so the product is rescaled once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from slippagesim.errors import PriceUnavailable
from slippagesim.fixed_point import FixedPoint

if TYPE_CHECKING:
    from slippagesim.basket import Component
    from slippagesim.pricing.sources import PriceSource

logger = logging.getLogger(__name__)


async def fetch_price(source: PriceSource, ref: str) -> FixedPoint:
    """Query one source, turning any non-answer into PriceUnavailable.

    Raises:
        PriceUnavailable: If the source returns None or raises.
    """
    try:
        price = await source.current_price(ref)
    except PriceUnavailable:
        raise
    except Exception as exc:
        raise PriceUnavailable(ref, source.name, f"{type(exc).__name__}: {exc}") from exc
    if price is None:
        raise PriceUnavailable(ref, source.name)
    if not isinstance(price, FixedPoint):
        raise PriceUnavailable(ref, source.name, f"unexpected answer {type(price).__name__}")
    return price


class PriceAggregator:
    """Stateless composite price resolver.

    Holds references to its collaborators only. Every call queries them
    fresh, so the result is a pure function of what they answer.
    """

    def __init__(
        self,
        pool_source: PriceSource,
        share_source: PriceSource,
        reference_source: PriceSource | None = None,
    ) -> None:
        """Initialize aggregator.

        Args:
            pool_source: Source A, pool-implied exchange rate per component.
            share_source: Source B, vault share price per component.
            reference_source: Unit price of the base asset. Defaults to
                pool_source, which usually quotes the base pool as well.
        """
        self._pool_source = pool_source
        self._share_source = share_source
        self._reference_source = reference_source if reference_source is not None else pool_source

    async def price_of(self, component: Component) -> FixedPoint:
        """Composite unit price: pool rate * share price.

        Both sub-prices are requested concurrently and both are awaited
        before either failure is reported.

        Raises:
            PriceUnavailable: If either sub-source cannot answer.
        """
        results = await asyncio.gather(
            fetch_price(self._pool_source, component.pool_ref),
            fetch_price(self._share_source, component.vault_ref),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                logger.debug(
                    "Component price unavailable",
                    extra={"component": component.component_id, "error": str(result)},
                )
                raise result
        pool_rate, share_price = results
        return pool_rate.mul(share_price)

    async def reference_price(self, asset_id: str) -> FixedPoint:
        """Unit price of the base asset being deposited.

        Raises:
            PriceUnavailable: If the reference source cannot answer.
        """
        return await fetch_price(self._reference_source, asset_id)
