"""Simulation driver.

Runs mint/value/redeem round trips over a block range and records the
slippage of every mint.

State machine (one cycle):
    DEPOSITING -> CONVERTING -> VALUING -> RECORDING -> REDEEMING -> ADVANCING
        ^                                                                |
        +----------------------------------------------------------------+

IDLE -> (cycles) -> FINISHED once the block marker reaches end_block or
max_cycles is hit. Any SlippageSimError moves to ABORTED and ends the
whole run; the records of completed cycles stay available.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from slippagesim.contracts import CycleRecord, DriverState
from slippagesim.errors import SlippageSimError
from slippagesim.pricing.valuator import BasketValuator
from slippagesim.sim.recorder import ResultRecorder, SimulationRun
from slippagesim.slippage import SlippageEvaluator

if TYPE_CHECKING:
    from slippagesim.ledger import BatchLedger
    from slippagesim.markers import BlockSource, Marker
    from slippagesim.pricing.aggregator import PriceAggregator
    from slippagesim.sim.config import SimulationConfig
    from slippagesim.sim.metrics import SimulationMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    """Finalized run plus the error that aborted it, if any."""

    run: SimulationRun
    error: SlippageSimError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def records(self) -> tuple[CycleRecord, ...]:
        return self.run.records

    def raise_for_error(self) -> None:
        """Re-raise the abort cause, if the run was aborted."""
        if self.error is not None:
            raise self.error


class SimulationDriver:
    """Sequential slippage simulation over one BatchLedger.

    The driver owns the ledger state and the SimulationRun for the whole
    run. Collaborators are only called from inside a cycle, one cycle at
    a time.
    """

    def __init__(
        self,
        config: SimulationConfig,
        ledger: BatchLedger,
        aggregator: PriceAggregator,
        block_source: BlockSource,
        *,
        recorder: ResultRecorder | None = None,
        metrics: SimulationMetrics | None = None,
    ) -> None:
        """Initialize driver.

        Args:
            config: Validated run parameters.
            ledger: Batch ledger wired to the conversion service.
            aggregator: Composite price resolver (also quotes the base asset).
            block_source: Chain progress; fast-forwarded between cycles.
            recorder: Result recorder. A memory-only one if None.
            metrics: Optional Prometheus exporter.
        """
        self.config = config
        self._ledger = ledger
        self._aggregator = aggregator
        self._valuator = BasketValuator(aggregator)
        self._evaluator = SlippageEvaluator(config.max_slippage)
        self._block_source = block_source
        self._recorder = recorder if recorder is not None else ResultRecorder()
        self._metrics = metrics
        self._state = DriverState.IDLE
        self._history: list[DriverState] = [DriverState.IDLE]
        self._started = False

    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def state_history(self) -> list[DriverState]:
        return list(self._history)

    def _transition(self, new_state: DriverState) -> None:
        logger.debug(
            "Driver transition",
            extra={"from_state": self._state.value, "to_state": new_state.value},
        )
        self._state = new_state
        self._history.append(new_state)

    def _should_continue(self, marker: Marker, cycles_done: int) -> bool:
        if marker.block >= self.config.end_block:
            return False
        return self.config.max_cycles is None or cycles_done < self.config.max_cycles

    async def run(self) -> SimulationResult:
        """Run cycles until end_block, max_cycles, or the first failure.

        A driver runs once.

        Returns:
            SimulationResult with the finalized run. On abort, `error` holds
            the failure and the run holds every record made before it.
        """
        if self._started:
            raise RuntimeError("SimulationDriver.run() can only be called once")
        self._started = True

        run = SimulationRun(config=self.config, recorder=self._recorder)
        cycle = 0
        logger.info(
            "Simulation started",
            extra={
                "start_block": self.config.start_block,
                "end_block": self.config.end_block,
                "input_amount": str(self.config.input_amount),
                "max_slippage": str(self.config.max_slippage),
            },
        )

        try:
            marker = self._block_source.current_marker()
            if marker.block < self.config.start_block:
                marker = self._block_source.advance(self.config.start_block - marker.block)

            while self._should_continue(marker, cycle):
                marker = await self._run_cycle(cycle, run)
                cycle += 1
        except SlippageSimError as exc:
            logger.error(
                "Simulation aborted",
                extra={
                    "cycle": cycle,
                    "state": self._state.value,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            self._transition(DriverState.ABORTED)
            run.finalize(DriverState.ABORTED, exc)
            if self._metrics is not None:
                self._metrics.observe_abort()
            return SimulationResult(run=run, error=exc)
        except Exception:
            self._transition(DriverState.ABORTED)
            run.finalize(DriverState.ABORTED)
            raise

        self._transition(DriverState.FINISHED)
        run.finalize(DriverState.FINISHED)
        logger.info(
            "Simulation finished",
            extra={"cycles": cycle, "last_block": marker.block},
        )
        return SimulationResult(run=run)

    def run_sync(self) -> SimulationResult:
        """Blocking wrapper around run() for scripts."""
        return asyncio.run(self.run())

    async def _run_cycle(self, cycle: int, run: SimulationRun) -> Marker:
        """One round trip. Returns the marker after advancing."""
        config = self.config
        amount = config.input_amount_fp
        depositor = config.depositor

        self._transition(DriverState.DEPOSITING)
        mint_batch_id = self._ledger.deposit(amount, depositor)

        self._transition(DriverState.CONVERTING)
        reference_price = await self._aggregator.reference_price(config.reference_asset)
        input_value = amount.mul(reference_price)
        mint_batch = await self._ledger.trigger_mint(mint_batch_id)
        output_amount, basket, mint_marker = mint_batch.conversion_result()

        self._transition(DriverState.VALUING)
        output_value = await self._valuator.value_of(basket)

        self._transition(DriverState.RECORDING)
        result = self._evaluator.evaluate(input_value, output_value)
        record = CycleRecord(
            cycle=cycle,
            block=mint_marker.block,
            timestamp=mint_marker.timestamp,
            input_amount=amount.to_decimal(),
            input_value=input_value.to_decimal(),
            output_amount=output_amount.to_decimal(),
            output_value=output_value.to_decimal(),
            slippage=result.ratio,
            within_tolerance=result.within_tolerance,
        )
        run.append(record)
        if self._metrics is not None:
            self._metrics.observe_cycle(record)
        logger.info(
            "Cycle recorded",
            extra={
                "cycle": cycle,
                "block": record.block,
                "input_value": str(record.input_value),
                "output_amount": str(record.output_amount),
                "output_value": str(record.output_value),
                "slippage": str(record.slippage),
                "within_tolerance": record.within_tolerance,
            },
        )

        self._transition(DriverState.REDEEMING)
        unclaimed = mint_batch.share_of(depositor)
        self._ledger.move_unclaimed(mint_batch_id, unclaimed, depositor)
        redeem_batch = await self._ledger.trigger_redeem()
        self._ledger.claim(redeem_batch.batch_id, depositor)

        self._transition(DriverState.ADVANCING)
        marker = self._block_source.advance(config.blocks_per_cycle)
        if self._metrics is not None:
            self._metrics.observe_block(marker.block)
        return marker
