"""
Prometheus metrics for simulation runs.

Low-cardinality only: no per-block, per-batch or per-component labels.
Gauges hold the latest observation; counters accumulate across runs that
share a registry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge
from prometheus_client.registry import CollectorRegistry

if TYPE_CHECKING:
    from slippagesim.contracts import CycleRecord

REQUIRED_METRIC_NAMES = frozenset(
    {
        "slippagesim_cycles_total",
        "slippagesim_cycles_failed_tolerance_total",
        "slippagesim_runs_aborted_total",
        "slippagesim_last_slippage_ratio",
        "slippagesim_current_block",
    }
)


class SimulationMetrics:
    """
    Prometheus exporter fed by the simulation driver.

    Usage:
        registry = CollectorRegistry()
        metrics = SimulationMetrics(registry=registry)
        driver = SimulationDriver(..., metrics=metrics)
        # generate_latest(registry) -> bytes for scraping or a textfile
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """
        Initialize exporter.

        Args:
            registry: Prometheus CollectorRegistry. A private one if None.
        """
        self._registry = registry or CollectorRegistry()

        self._cycles = Counter(
            "slippagesim_cycles",
            "Completed mint/value/redeem cycles",
            registry=self._registry,
        )
        self._cycles_failed = Counter(
            "slippagesim_cycles_failed_tolerance",
            "Cycles whose slippage exceeded the configured maximum",
            registry=self._registry,
        )
        self._runs_aborted = Counter(
            "slippagesim_runs_aborted",
            "Runs aborted by a price, conversion or valuation failure",
            registry=self._registry,
        )
        self._last_slippage = Gauge(
            "slippagesim_last_slippage_ratio",
            "Slippage ratio of the most recent cycle",
            registry=self._registry,
        )
        self._current_block = Gauge(
            "slippagesim_current_block",
            "Block marker the driver last observed",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def observe_cycle(self, record: CycleRecord) -> None:
        """Record one completed cycle."""
        self._cycles.inc()
        if not record.within_tolerance:
            self._cycles_failed.inc()
        # Gauge export only; the record keeps the exact value.
        self._last_slippage.set(float(record.slippage))
        self._current_block.set(record.block)

    def observe_block(self, block: int) -> None:
        self._current_block.set(block)

    def observe_abort(self) -> None:
        self._runs_aborted.inc()
