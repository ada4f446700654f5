"""Slippage simulation driver and its run outputs.

Deterministic: for the same collaborators and config, two runs produce
identical records and the same artifacts digest.
"""

from __future__ import annotations

from slippagesim.sim.artifacts import (
    RunArtifacts,
    RunSummary,
    build_run_artifacts,
    compute_summary,
    dump_artifacts_json,
)
from slippagesim.sim.config import SimulationConfig
from slippagesim.sim.driver import SimulationDriver, SimulationResult
from slippagesim.sim.metrics import SimulationMetrics
from slippagesim.sim.recorder import ResultRecorder, SimulationRun, read_jsonl

__all__ = [
    "ResultRecorder",
    "RunArtifacts",
    "RunSummary",
    "SimulationConfig",
    "SimulationDriver",
    "SimulationMetrics",
    "SimulationResult",
    "SimulationRun",
    "build_run_artifacts",
    "compute_summary",
    "dump_artifacts_json",
    "read_jsonl",
]
