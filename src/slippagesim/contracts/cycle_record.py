"""CycleRecord contract.

Immutable measurement of one simulation cycle.
Producer: SimulationDriver
Consumer: ResultRecorder, RunArtifacts, offline analysis

Field order is the serialization order of every exported line.
"""

from __future__ import annotations

from decimal import Decimal  # noqa: TC003 - used at runtime in validators
from typing import Annotated

from pydantic import Field, field_validator

from slippagesim.contracts.base import ContractBase, parse_decimal

CSV_COLUMNS = (
    "block",
    "timestamp",
    "input_amount",
    "input_value",
    "output_amount",
    "output_value",
    "slippage",
    "within_tolerance",
)


class CycleRecord(ContractBase):
    """One mint/value/redeem round trip."""

    cycle: int = Field(ge=0, description="Zero-based cycle index within the run")
    block: int = Field(ge=0, description="Block of the mint trigger")
    timestamp: int = Field(ge=0, description="Block timestamp (seconds)")
    input_amount: Annotated[Decimal, Field(description="Base asset deposited")] = Field()
    input_value: Annotated[Decimal, Field(description="Deposit value in reference currency")] = (
        Field()
    )
    output_amount: Annotated[Decimal, Field(description="Basket tokens produced")] = Field()
    output_value: Annotated[Decimal, Field(description="Basket value in reference currency")] = (
        Field()
    )
    slippage: Annotated[Decimal, Field(description="input_value / output_value - 1")] = Field()
    within_tolerance: bool = Field(description="slippage <= configured max slippage")

    @field_validator(
        "input_amount",
        "input_value",
        "output_amount",
        "output_value",
        "slippage",
        mode="before",
    )
    @classmethod
    def parse_decimal_fields(cls, v: object) -> Decimal:
        """Parse Decimal fields."""
        return parse_decimal(v)

    def csv_row(self) -> list[str]:
        """Values in CSV_COLUMNS order."""
        return [
            str(self.block),
            str(self.timestamp),
            str(self.input_amount),
            str(self.input_value),
            str(self.output_amount),
            str(self.output_value),
            str(self.slippage),
            "true" if self.within_tolerance else "false",
        ]
