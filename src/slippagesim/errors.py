"""Error taxonomy for the slippage simulator.

Every error raised inside a cycle is terminal to the run. Nothing is
retried: a slippage series is only comparable when every cycle in it
succeeded.
"""

from __future__ import annotations


class SlippageSimError(Exception):
    """Base exception for simulator failures."""


class PriceUnavailable(SlippageSimError):
    """A price source could not answer for a component or asset."""

    def __init__(self, ref: str, source: str, reason: str = "") -> None:
        self.ref = ref
        self.source = source
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"price unavailable for {ref} from {source}{detail}")


class ConversionFailed(SlippageSimError):
    """The conversion service rejected a mint or redeem trigger."""


class ConversionRejected(Exception):
    """Raised by a conversion service when it refuses a conversion.

    Collaborator-side error. The ledger wraps it into ConversionFailed.
    """


class DegenerateValuation(SlippageSimError):
    """A basket was valued at zero, so slippage is undefined."""


class Underflow(SlippageSimError, ArithmeticError):
    """A fixed-point subtraction would produce a negative value."""


class NothingToClaim(SlippageSimError):
    """The recipient holds no shares in the batch."""


class BatchStateError(SlippageSimError):
    """An operation is illegal in the batch's current state."""


class InvalidConfiguration(SlippageSimError, ValueError):
    """Run parameters failed validation before any cycle started."""
