"""Contract enums.

All enums are strict string enums so they serialize as their value.
"""

from enum import Enum


class BatchType(str, Enum):
    """Conversion direction of a batch."""

    MINT = "MINT"  # base asset -> basket token
    REDEEM = "REDEEM"  # basket token -> base asset


class BatchState(str, Enum):
    """Batch lifecycle. Transitions only move forward."""

    PENDING = "PENDING"
    TRIGGERED = "TRIGGERED"
    CLAIMED = "CLAIMED"


class DriverState(str, Enum):
    """Simulation driver state machine states."""

    IDLE = "IDLE"
    DEPOSITING = "DEPOSITING"
    CONVERTING = "CONVERTING"
    VALUING = "VALUING"
    RECORDING = "RECORDING"
    REDEEMING = "REDEEMING"
    ADVANCING = "ADVANCING"
    FINISHED = "FINISHED"
    ABORTED = "ABORTED"
