"""In-memory collaborators.

Deterministic stand-ins for the chain, the price sources and the batch
conversion contract. Used by tests, scenario files and the CLI to run the
driver offline.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from slippagesim.basket import Basket, Component
from slippagesim.errors import ConversionRejected
from slippagesim.fixed_point import ZERO, FixedPoint
from slippagesim.ledger.ledger import ConversionReceipt
from slippagesim.markers import BlockSource, Marker
from slippagesim.pricing.aggregator import fetch_price
from slippagesim.pricing.sources import PriceSource

BPS = 10_000
DEFAULT_SECONDS_PER_BLOCK = 13


class ManualBlockSource:
    """Block counter advanced explicitly. Timestamps follow a fixed block time."""

    def __init__(
        self,
        block: int = 0,
        timestamp: int = 0,
        seconds_per_block: int = DEFAULT_SECONDS_PER_BLOCK,
    ) -> None:
        self._marker = Marker(block, timestamp)
        self._seconds_per_block = seconds_per_block

    def current_marker(self) -> Marker:
        return self._marker

    def advance(self, blocks: int) -> Marker:
        if blocks < 0:
            raise ValueError(f"cannot rewind by {blocks} blocks")
        self._marker = Marker(
            self._marker.block + blocks,
            self._marker.timestamp + blocks * self._seconds_per_block,
        )
        return self._marker

    def mine(self) -> Marker:
        """One block, as a triggering transaction would mine."""
        return self.advance(1)


class StaticPriceSource:
    """Fixed answers per reference key. None (or a missing key) means unavailable."""

    def __init__(self, name: str, prices: Mapping[str, FixedPoint | None] | None = None) -> None:
        self._name = name
        self._prices: dict[str, FixedPoint | None] = dict(prices or {})
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def set_price(self, ref: str, price: FixedPoint | None) -> None:
        self._prices[ref] = price

    async def current_price(self, ref: str) -> FixedPoint | None:
        self.calls.append(ref)
        return self._prices.get(ref)


PriceSchedule = Sequence[tuple[int, FixedPoint | None]]


class ScheduledPriceSource:
    """Piecewise-constant prices over blocks.

    Each key maps to (from_block, price) steps sorted by block; the price
    in force is the last step at or before the current block. Blocks
    before the first step have no price.
    """

    def __init__(
        self,
        name: str,
        schedules: Mapping[str, PriceSchedule],
        block_source: BlockSource,
    ) -> None:
        self._name = name
        self._schedules = {ref: sorted(steps, key=lambda s: s[0]) for ref, steps in schedules.items()}
        self._block_source = block_source

    @property
    def name(self) -> str:
        return self._name

    async def current_price(self, ref: str) -> FixedPoint | None:
        block = self._block_source.current_marker().block
        price: FixedPoint | None = None
        for from_block, step_price in self._schedules.get(ref, ()):
            if from_block > block:
                break
            price = step_price
        return price


@dataclass(frozen=True)
class BasketComposition:
    """Component units backing one basket token."""

    component: Component
    units_per_token: FixedPoint


class InMemoryConversionService:
    """Batch conversion contract over a fixed basket composition.

    mint: base asset -> basket tokens at current prices, minus fee_bps.
    redeem: basket tokens -> base asset at current prices, minus fee_bps.
    Every conversion mines one block. max_conversion caps the input of a
    single call; larger calls are rejected as if liquidity ran out.
    """

    def __init__(
        self,
        composition: Sequence[BasketComposition],
        block_source: ManualBlockSource,
        pool_source: PriceSource,
        share_source: PriceSource,
        reference_source: PriceSource,
        *,
        reference_asset: str = "3CRV",
        fee_bps: int = 0,
        max_conversion: FixedPoint | None = None,
    ) -> None:
        if not 0 <= fee_bps < BPS:
            raise ValueError(f"fee_bps must be in [0, {BPS}), got {fee_bps}")
        self._composition = list(composition)
        self._block_source = block_source
        self._pool_source = pool_source
        self._share_source = share_source
        self._reference_source = reference_source
        self._reference_asset = reference_asset
        self._fee_bps = fee_bps
        self._max_conversion = max_conversion
        self.rejecting = False
        self.mints = 0
        self.redeems = 0

    async def _token_value(self) -> FixedPoint:
        value = ZERO
        for entry in self._composition:
            pool = await fetch_price(self._pool_source, entry.component.pool_ref)
            share = await fetch_price(self._share_source, entry.component.vault_ref)
            value = value + entry.units_per_token.mul(pool.mul(share))
        return value

    def _basket_for(self, tokens: FixedPoint) -> Basket:
        return Basket.of(
            entry.component.with_quantity(entry.units_per_token.mul(tokens))
            for entry in self._composition
        )

    def _after_fee(self, amount: FixedPoint) -> FixedPoint:
        return amount.scale_by(BPS - self._fee_bps).divide_by(BPS)

    def _check(self, amount: FixedPoint) -> None:
        if self.rejecting:
            raise ConversionRejected("conversions are paused")
        if self._max_conversion is not None and amount > self._max_conversion:
            raise ConversionRejected(
                f"insufficient liquidity for {amount} (max {self._max_conversion})"
            )

    async def mint(self, amount: FixedPoint) -> ConversionReceipt:
        self._check(amount)
        reference = await fetch_price(self._reference_source, self._reference_asset)
        token_value = await self._token_value()
        if token_value.is_zero:
            raise ConversionRejected("basket token has no value")
        tokens = self._after_fee(amount.mul(reference).div(token_value))
        marker = self._block_source.mine()
        self.mints += 1
        return ConversionReceipt(output_amount=tokens, marker=marker, basket=self._basket_for(tokens))

    async def redeem(self, amount: FixedPoint) -> ConversionReceipt:
        self._check(amount)
        reference = await fetch_price(self._reference_source, self._reference_asset)
        if reference.is_zero:
            raise ConversionRejected("base asset has no value")
        token_value = await self._token_value()
        base = self._after_fee(amount.mul(token_value).div(reference))
        marker = self._block_source.mine()
        self.redeems += 1
        return ConversionReceipt(output_amount=base, marker=marker, basket=self._basket_for(amount))
