"""Scenario files.

A scenario is a JSON document describing the simulation config, the
starting chain marker, the basket composition and piecewise price
schedules. It is turned into a ready-to-run SimulationDriver backed by
the in-memory collaborators.

{
  "config": {"input_amount": "100000", "start_block": 100, "end_block": 400},
  "chain": {"block": 100, "timestamp": 1626000000, "seconds_per_block": 13},
  "fee_bps": 5,
  "max_conversion": null,
  "reference": [[0, "1.02"]],
  "components": [
    {"id": "yFRAX", "units_per_token": "0.25",
     "pool": [[0, "1.01"]], "vault": [[0, "1.05"], [250, "1.06"]]}
  ]
}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

from slippagesim.basket import Component
from slippagesim.errors import InvalidConfiguration
from slippagesim.fixed_point import FixedPoint
from slippagesim.ledger import BatchLedger
from slippagesim.pricing import PriceAggregator
from slippagesim.sim.config import SimulationConfig
from slippagesim.sim.driver import SimulationDriver
from slippagesim.sim.fixture import (
    DEFAULT_SECONDS_PER_BLOCK,
    BasketComposition,
    InMemoryConversionService,
    ManualBlockSource,
    PriceSchedule,
    ScheduledPriceSource,
)

if TYPE_CHECKING:
    from slippagesim.sim.metrics import SimulationMetrics
    from slippagesim.sim.recorder import ResultRecorder


@dataclass
class Scenario:
    """Collaborators and config built from a scenario document."""

    config: SimulationConfig
    block_source: ManualBlockSource
    conversion: InMemoryConversionService
    ledger: BatchLedger
    aggregator: PriceAggregator

    def driver(
        self,
        *,
        recorder: ResultRecorder | None = None,
        metrics: SimulationMetrics | None = None,
    ) -> SimulationDriver:
        return SimulationDriver(
            self.config,
            self.ledger,
            self.aggregator,
            self.block_source,
            recorder=recorder,
            metrics=metrics,
        )


def _schedule(raw: Any, where: str) -> PriceSchedule:
    if not isinstance(raw, list) or not raw:
        raise InvalidConfiguration(f"{where}: expected a non-empty list of [block, price]")
    steps = []
    for step in raw:
        if not isinstance(step, list) or len(step) != 2:
            raise InvalidConfiguration(f"{where}: bad step {step!r}")
        block, price = step
        try:
            steps.append((int(block), None if price is None else FixedPoint.from_decimal(str(price))))
        except (TypeError, ValueError) as exc:
            raise InvalidConfiguration(f"{where}: bad step {step!r}: {exc}") from exc
    return steps


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, Mapping):
        raise InvalidConfiguration(f"{key}: expected a JSON object, got {type(value).__name__}")
    return value


def build_scenario(
    data: Mapping[str, Any],
    overrides: Mapping[str, Any] | None = None,
) -> Scenario:
    """Build collaborators from a parsed scenario document.

    Args:
        data: Scenario document.
        overrides: Config fields replacing those in the document.

    Raises:
        InvalidConfiguration: If the document or the config is invalid.
    """
    config = SimulationConfig.from_mapping({**_section(data, "config"), **(overrides or {})})

    chain = _section(data, "chain")
    try:
        block_source = ManualBlockSource(
            block=int(chain.get("block", config.start_block)),
            timestamp=int(chain.get("timestamp", 0)),
            seconds_per_block=int(chain.get("seconds_per_block", DEFAULT_SECONDS_PER_BLOCK)),
        )
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"chain: {exc}") from exc

    components = data.get("components")
    if not isinstance(components, list) or not components:
        raise InvalidConfiguration("components: expected a non-empty list")

    composition: list[BasketComposition] = []
    pool_schedules: dict[str, PriceSchedule] = {}
    vault_schedules: dict[str, PriceSchedule] = {}
    for raw in components:
        if not isinstance(raw, dict):
            raise InvalidConfiguration(f"components: expected an object, got {raw!r}")
        try:
            component = Component(
                component_id=str(raw["id"]),
                pool_ref=str(raw.get("pool_ref", "")),
                vault_ref=str(raw.get("vault_ref", "")),
            )
            units = FixedPoint.from_decimal(str(raw["units_per_token"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidConfiguration(f"components: {exc}") from exc
        composition.append(BasketComposition(component, units))
        pool_schedules[component.pool_ref] = _schedule(raw.get("pool"), f"{component.component_id}.pool")
        vault_schedules[component.vault_ref] = _schedule(
            raw.get("vault"), f"{component.component_id}.vault"
        )

    # The base asset is quoted by the pool source, like the 3pool virtual price.
    pool_schedules[config.reference_asset] = _schedule(data.get("reference"), "reference")
    pool_source = ScheduledPriceSource("pool", pool_schedules, block_source)
    vault_source = ScheduledPriceSource("vault", vault_schedules, block_source)

    max_conversion = data.get("max_conversion")
    try:
        conversion = InMemoryConversionService(
            composition,
            block_source,
            pool_source,
            vault_source,
            pool_source,
            reference_asset=config.reference_asset,
            fee_bps=int(data.get("fee_bps", 0)),
            max_conversion=(
                None if max_conversion is None else FixedPoint.from_decimal(str(max_conversion))
            ),
        )
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(str(exc)) from exc

    return Scenario(
        config=config,
        block_source=block_source,
        conversion=conversion,
        ledger=BatchLedger(conversion),
        aggregator=PriceAggregator(pool_source, vault_source),
    )


def load_scenario(path: Path, overrides: Mapping[str, Any] | None = None) -> Scenario:
    """Read and build a scenario file.

    Raises:
        InvalidConfiguration: If the file is not a JSON object or is invalid.
    """
    try:
        data = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        raise InvalidConfiguration(f"{path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"{path}: expected a JSON object")
    return build_scenario(data, overrides)
