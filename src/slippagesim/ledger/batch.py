"""Batch model.

A batch pools deposits of one direction (mint or redeem), is converted in
one call, and is then paid out pro-rata to the depositors' shares.

State machine:
    PENDING -> TRIGGERED -> CLAIMED

Deposits are only accepted while PENDING. Payouts (claims and moves of
unclaimed shares) only while TRIGGERED; the batch becomes CLAIMED once
no unclaimed shares remain.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from slippagesim.basket import Basket  # noqa: TC001 - used at runtime in dataclass fields
from slippagesim.contracts import BatchState, BatchType
from slippagesim.errors import BatchStateError, NothingToClaim
from slippagesim.fixed_point import ZERO, FixedPoint
from slippagesim.markers import Marker  # noqa: TC001 - used at runtime in dataclass fields


@dataclass
class Batch:
    """One conversion batch."""

    batch_id: int
    batch_type: BatchType
    state: BatchState = BatchState.PENDING

    # Input side
    supplied: FixedPoint = ZERO
    shares: dict[str, FixedPoint] = field(default_factory=dict)
    unclaimed_shares: FixedPoint = ZERO

    # Output side, set once by trigger()
    output_amount: FixedPoint | None = None
    claimable: FixedPoint = ZERO
    basket: Basket | None = None
    marker: Marker | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == BatchState.PENDING

    @property
    def is_triggered(self) -> bool:
        return self.state == BatchState.TRIGGERED

    def share_of(self, depositor: str) -> FixedPoint:
        return self.shares.get(depositor, ZERO)

    def add_deposit(self, depositor: str, amount: FixedPoint) -> None:
        """Record a deposit.

        Raises:
            BatchStateError: If the batch is no longer PENDING.
            ValueError: If amount is zero.
        """
        if not self.is_pending:
            raise BatchStateError(
                f"batch {self.batch_id} is {self.state.value}, deposits need PENDING"
            )
        if amount.is_zero:
            raise ValueError("deposit amount must be positive")
        self.supplied = self.supplied + amount
        self.unclaimed_shares = self.unclaimed_shares + amount
        self.shares[depositor] = self.share_of(depositor) + amount

    def trigger(self, output_amount: FixedPoint, basket: Basket, marker: Marker) -> None:
        """PENDING -> TRIGGERED, recording the conversion result.

        Raises:
            BatchStateError: If the batch was already triggered.
        """
        if not self.is_pending:
            raise BatchStateError(
                f"batch {self.batch_id} is {self.state.value}, cannot trigger again"
            )
        self.output_amount = output_amount
        self.claimable = output_amount
        self.basket = basket
        self.marker = marker
        self.state = BatchState.TRIGGERED

    def conversion_result(self) -> tuple[FixedPoint, Basket, Marker]:
        """(output_amount, basket, marker) recorded by trigger().

        Raises:
            BatchStateError: If the batch was never triggered.
        """
        if self.output_amount is None or self.basket is None or self.marker is None:
            raise BatchStateError(f"batch {self.batch_id} has no conversion result")
        return self.output_amount, self.basket, self.marker

    def payout_for(self, depositor: str, shares: FixedPoint) -> FixedPoint:
        """Pro-rata output owed for `shares` of this depositor, without mutating.

        Raises:
            BatchStateError: If the batch is not TRIGGERED or the depositor
                holds fewer shares than requested.
            NothingToClaim: If the depositor holds no shares.
        """
        if self.state == BatchState.PENDING:
            raise BatchStateError(f"batch {self.batch_id} has not been triggered yet")
        held = self.share_of(depositor)
        if held.is_zero:
            raise NothingToClaim(f"{depositor} holds no shares in batch {self.batch_id}")
        if shares > held:
            raise BatchStateError(
                f"{depositor} holds {held} unclaimed shares in batch {self.batch_id}, "
                f"requested {shares}"
            )
        return FixedPoint(self.claimable.raw * shares.raw // self.unclaimed_shares.raw)

    def take(self, depositor: str, shares: FixedPoint) -> FixedPoint:
        """Remove shares and the output they are owed. Returns the output."""
        payout = self.payout_for(depositor, shares)
        remaining = self.share_of(depositor) - shares
        if remaining.is_zero:
            del self.shares[depositor]
        else:
            self.shares[depositor] = remaining
        self.unclaimed_shares = self.unclaimed_shares - shares
        self.claimable = self.claimable - payout
        if self.unclaimed_shares.is_zero:
            self.state = BatchState.CLAIMED
        return payout
