"""Simulation configuration.

SimulationConfig is frozen (immutable) and defines all run parameters.
Every combination is validated at construction, before any cycle runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from slippagesim.contracts.base import parse_decimal
from slippagesim.errors import InvalidConfiguration
from slippagesim.fixed_point import FixedPoint, decimal_to_raw
from slippagesim.ledger.ledger import DEFAULT_ACCOUNT

# Block range and deposit size of the mainnet-fork measurement
DEFAULT_START_BLOCK = 12_833_323
DEFAULT_END_BLOCK = 13_307_297
DEFAULT_INPUT_AMOUNT = Decimal("100000000")
DEFAULT_BLOCKS_PER_CYCLE = 35


class SimulationConfig(BaseModel):
    """Slippage simulation parameters (frozen).

    Amounts and ratios are Decimal with at most 18 fractional digits so
    they convert to fixed-point exactly.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    input_amount: Annotated[
        Decimal,
        Field(description="Base asset deposited every cycle"),
    ] = Field(default=DEFAULT_INPUT_AMOUNT)
    max_slippage: Annotated[
        Decimal,
        Field(description="Maximum acceptable slippage ratio (0.005 = 0.5%)"),
    ] = Field(default=Decimal("0.005"))
    start_block: int = Field(
        default=DEFAULT_START_BLOCK,
        ge=0,
        description="First block of the measured range (inclusive)",
    )
    end_block: int = Field(
        default=DEFAULT_END_BLOCK,
        ge=0,
        description="End of the measured range (exclusive)",
    )
    max_cycles: int | None = Field(
        default=None,
        ge=1,
        description="Stop after this many cycles even if end_block is not reached",
    )
    blocks_per_cycle: int = Field(
        default=DEFAULT_BLOCKS_PER_CYCLE,
        ge=1,
        description="Blocks fast-forwarded after each round trip",
    )
    reference_asset: str = Field(
        default="3CRV",
        min_length=1,
        description="Price source key of the deposited base asset",
    )
    depositor: str = Field(
        default=DEFAULT_ACCOUNT,
        min_length=1,
        description="Account the simulated deposits and claims belong to",
    )

    @field_validator("input_amount", "max_slippage", mode="before")
    @classmethod
    def parse_decimal_fields(cls, v: object) -> Decimal:
        """Parse Decimal fields."""
        return parse_decimal(v)

    @field_validator("input_amount", "max_slippage")
    @classmethod
    def check_fixed_point_precision(cls, v: Decimal) -> Decimal:
        """Reject values fixed-point cannot represent exactly."""
        decimal_to_raw(v)
        return v

    @model_validator(mode="after")
    def check_ranges(self) -> SimulationConfig:
        if self.end_block <= self.start_block:
            raise ValueError(
                f"end_block ({self.end_block}) must be greater than start_block "
                f"({self.start_block})"
            )
        if self.input_amount <= 0:
            raise ValueError(f"input_amount must be positive, got {self.input_amount}")
        if self.max_slippage < 0:
            raise ValueError(f"max_slippage must be non-negative, got {self.max_slippage}")
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SimulationConfig:
        """Build a config from untrusted input.

        Raises:
            InvalidConfiguration: With every validation error in the message.
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in exc.errors()
            )
            raise InvalidConfiguration(problems) from exc

    @property
    def input_amount_fp(self) -> FixedPoint:
        return FixedPoint.from_decimal(self.input_amount)
