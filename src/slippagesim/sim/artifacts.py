"""Run summary and artifacts.

RunArtifacts contains everything a finished (or aborted) run produced.
Deterministic SHA256 computed over the canonical JSON dump, so two runs
against the same collaborators can be compared by digest alone.
"""

from __future__ import annotations

import hashlib
from decimal import Decimal
from typing import TYPE_CHECKING, Annotated, Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator

from slippagesim.contracts.base import parse_decimal
from slippagesim.fixed_point import decimal_to_raw, raw_to_decimal

if TYPE_CHECKING:
    from slippagesim.sim.recorder import SimulationRun


class RunSummary(BaseModel):
    """Aggregate view of a run's slippage series."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cycles: int = Field(ge=0, description="Completed cycles")
    passed: int = Field(ge=0, description="Cycles within tolerance")
    failed: int = Field(ge=0, description="Cycles above tolerance")
    min_slippage: Annotated[Decimal | None, Field(description="Lowest ratio")] = None
    max_slippage: Annotated[Decimal | None, Field(description="Highest ratio")] = None
    mean_slippage: Annotated[
        Decimal | None,
        Field(description="Mean ratio, floored at 18 decimals"),
    ] = None
    first_block: int | None = Field(default=None, description="Block of the first cycle")
    last_block: int | None = Field(default=None, description="Block of the last cycle")
    final_state: str | None = Field(default=None, description="Terminal driver state")
    error_type: str | None = Field(default=None, description="Abort cause, if any")

    @field_validator("min_slippage", "max_slippage", "mean_slippage", mode="before")
    @classmethod
    def parse_decimal_fields(cls, v: object) -> Decimal | None:
        """Parse Decimal fields."""
        if v is None:
            return None
        return parse_decimal(v)

    @property
    def all_within_tolerance(self) -> bool:
        return self.cycles > 0 and self.failed == 0


def compute_summary(run: SimulationRun) -> RunSummary:
    """Summarize a run's records."""
    records = run.records
    final_state = run.final_state.value if run.final_state else None
    error_type = type(run.error).__name__ if run.error else None
    if not records:
        return RunSummary(
            cycles=0,
            passed=0,
            failed=0,
            final_state=final_state,
            error_type=error_type,
        )

    ratios = [decimal_to_raw(r.slippage) for r in records]
    passed = sum(1 for r in records if r.within_tolerance)
    return RunSummary(
        cycles=len(records),
        passed=passed,
        failed=len(records) - passed,
        min_slippage=raw_to_decimal(min(ratios)),
        max_slippage=raw_to_decimal(max(ratios)),
        mean_slippage=raw_to_decimal(sum(ratios) // len(ratios)),
        first_block=records[0].block,
        last_block=records[-1].block,
        final_state=final_state,
        error_type=error_type,
    )


class RunArtifacts(BaseModel):
    """Simulation artifacts container with deterministic SHA256."""

    model_config = ConfigDict(extra="forbid")

    config: dict[str, Any] = Field(description="SimulationConfig as dict")
    records: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Cycle records (CycleRecord as dict)",
    )
    summary: dict[str, Any] = Field(description="RunSummary as dict")
    sha256: str = Field(description="SHA256 of canonical JSON dump (computed)")

    @classmethod
    def compute_sha256(cls, data: dict[str, Any]) -> str:
        """Compute SHA256 of canonical JSON dump.

        Uses orjson with sorted keys for deterministic output.

        Args:
            data: Dict to hash (without sha256 field).

        Returns:
            64-character hex SHA256 digest.
        """
        canonical = orjson.dumps(data, option=orjson.OPT_SORT_KEYS)
        return hashlib.sha256(canonical).hexdigest()


def build_run_artifacts(run: SimulationRun) -> RunArtifacts:
    """Build artifacts for a run with deterministic SHA256."""
    data = {
        "config": run.config.model_dump(mode="json"),
        "records": [r.model_dump(mode="json") for r in run.records],
        "summary": compute_summary(run).model_dump(mode="json"),
    }
    return RunArtifacts(**data, sha256=RunArtifacts.compute_sha256(data))


def dump_artifacts_json(artifacts: RunArtifacts) -> bytes:
    """Dump artifacts to canonical JSON bytes (sorted keys, indented)."""
    return orjson.dumps(
        artifacts.model_dump(mode="json"),
        option=orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2,
    )
