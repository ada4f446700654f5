"""Record contracts and enums for the slippage simulator.

All contracts follow these invariants:
- schema_version is present on every model
- Amount/value/ratio fields use Decimal (not float)
- Strict enums for state/direction
- No extra fields allowed (extra='forbid')
"""

from slippagesim.contracts.cycle_record import CSV_COLUMNS, CycleRecord
from slippagesim.contracts.types import BatchState, BatchType, DriverState

__all__ = [
    "CSV_COLUMNS",
    "BatchState",
    "BatchType",
    "CycleRecord",
    "DriverState",
]
