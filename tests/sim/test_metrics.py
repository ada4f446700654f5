"""Prometheus exporter tests."""

from __future__ import annotations

from prometheus_client import generate_latest
from prometheus_client.registry import CollectorRegistry

from slippagesim.contracts import CycleRecord
from slippagesim.sim import SimulationMetrics
from slippagesim.sim.metrics import REQUIRED_METRIC_NAMES


def make_record(slippage: str, within: bool, block: int = 500) -> CycleRecord:
    return CycleRecord(
        cycle=0,
        block=block,
        timestamp=0,
        input_amount="100",
        input_value="100",
        output_amount="100",
        output_value="99.5",
        slippage=slippage,
        within_tolerance=within,
    )


def sample_names(registry: CollectorRegistry) -> set[str]:
    return {sample.name for family in registry.collect() for sample in family.samples}


class TestSimulationMetrics:
    """Test metric names and values."""

    def test_required_names_exported(self) -> None:
        registry = CollectorRegistry()
        SimulationMetrics(registry=registry)
        assert REQUIRED_METRIC_NAMES <= sample_names(registry)

    def test_no_labels(self) -> None:
        registry = CollectorRegistry()
        metrics = SimulationMetrics(registry=registry)
        metrics.observe_cycle(make_record("0.001", True))
        for family in registry.collect():
            for sample in family.samples:
                assert sample.labels == {}

    def test_observe_cycle(self) -> None:
        registry = CollectorRegistry()
        metrics = SimulationMetrics(registry=registry)

        metrics.observe_cycle(make_record("0.001", True, block=500))
        metrics.observe_cycle(make_record("0.0075", False, block=537))

        assert registry.get_sample_value("slippagesim_cycles_total") == 2
        assert registry.get_sample_value("slippagesim_cycles_failed_tolerance_total") == 1
        assert registry.get_sample_value("slippagesim_last_slippage_ratio") == 0.0075
        assert registry.get_sample_value("slippagesim_current_block") == 537

    def test_observe_block_and_abort(self) -> None:
        registry = CollectorRegistry()
        metrics = SimulationMetrics(registry=registry)

        metrics.observe_block(12_833_360)
        metrics.observe_abort()

        assert registry.get_sample_value("slippagesim_current_block") == 12_833_360
        assert registry.get_sample_value("slippagesim_runs_aborted_total") == 1
        assert registry.get_sample_value("slippagesim_cycles_total") == 0

    def test_private_registry_by_default(self) -> None:
        first = SimulationMetrics()
        second = SimulationMetrics()
        first.observe_abort()
        assert first.registry is not second.registry
        assert second.registry.get_sample_value("slippagesim_runs_aborted_total") == 0

    def test_exposition_format(self) -> None:
        metrics = SimulationMetrics()
        metrics.observe_cycle(make_record("0.001", True))
        text = generate_latest(metrics.registry).decode()
        assert "# TYPE slippagesim_cycles_total counter" in text
        assert "slippagesim_current_block 500.0" in text
