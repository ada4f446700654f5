"""Batch ledger.

Keeps one PENDING batch per direction open at all times. Triggering a
batch converts its pooled input through the ConversionService and opens a
fresh PENDING batch of the same direction. Batch ids are shared across
directions and strictly increasing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from slippagesim.basket import EMPTY_BASKET, Basket
from slippagesim.contracts import BatchType
from slippagesim.errors import BatchStateError, ConversionFailed
from slippagesim.ledger.batch import Batch

if TYPE_CHECKING:
    from slippagesim.fixed_point import FixedPoint
    from slippagesim.markers import Marker

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT = "simulator"


@dataclass(frozen=True)
class ConversionReceipt:
    """What the conversion service reports for one triggered batch."""

    output_amount: FixedPoint
    marker: Marker
    basket: Basket = EMPTY_BASKET


class ConversionService(Protocol):
    """External mint/redeem collaborator.

    Raises (typically ConversionRejected) when it refuses a conversion,
    e.g. for insufficient liquidity.
    """

    async def mint(self, amount: FixedPoint) -> ConversionReceipt: ...

    async def redeem(self, amount: FixedPoint) -> ConversionReceipt: ...


def _opposite(batch_type: BatchType) -> BatchType:
    return BatchType.REDEEM if batch_type == BatchType.MINT else BatchType.MINT


class BatchLedger:
    """Batch lifecycle bookkeeping over a ConversionService."""

    def __init__(self, conversion: ConversionService) -> None:
        self._conversion = conversion
        self._batches: dict[int, Batch] = {}
        self._next_id = 1
        self._current: dict[BatchType, int] = {}
        self._open(BatchType.MINT)
        self._open(BatchType.REDEEM)

    def _open(self, batch_type: BatchType) -> Batch:
        batch = Batch(batch_id=self._next_id, batch_type=batch_type)
        self._next_id += 1
        self._batches[batch.batch_id] = batch
        self._current[batch_type] = batch.batch_id
        return batch

    # --- Queries ---

    def batch(self, batch_id: int) -> Batch:
        """Look up a batch. Raises KeyError for unknown ids."""
        return self._batches[batch_id]

    def current_batch(self, batch_type: BatchType) -> Batch:
        return self._batches[self._current[batch_type]]

    @property
    def current_mint_batch_id(self) -> int:
        return self._current[BatchType.MINT]

    @property
    def current_redeem_batch_id(self) -> int:
        return self._current[BatchType.REDEEM]

    # --- Deposits ---

    def deposit(self, amount: FixedPoint, depositor: str = DEFAULT_ACCOUNT) -> int:
        """Deposit base asset into the pending mint batch. Returns its id."""
        batch = self.current_batch(BatchType.MINT)
        batch.add_deposit(depositor, amount)
        return batch.batch_id

    def deposit_for_redeem(self, amount: FixedPoint, depositor: str = DEFAULT_ACCOUNT) -> int:
        """Deposit basket tokens into the pending redeem batch. Returns its id."""
        batch = self.current_batch(BatchType.REDEEM)
        batch.add_deposit(depositor, amount)
        return batch.batch_id

    def move_unclaimed(
        self,
        previous_batch_id: int,
        amount: FixedPoint,
        depositor: str = DEFAULT_ACCOUNT,
    ) -> FixedPoint:
        """Re-deposit unclaimed output of a triggered batch without claiming it.

        `amount` is in shares of the previous batch. The output those shares
        are owed is deposited into the pending batch of the opposite
        direction (minted tokens go on to be redeemed, and vice versa).
        Validation happens before any mutation, so a failed move leaves both
        batches untouched.

        Returns:
            The output amount deposited into the pending batch.

        Raises:
            BatchStateError: If the previous batch is not TRIGGERED or holds
                fewer than `amount` unclaimed shares for the depositor.
            NothingToClaim: If the depositor holds no shares there.
        """
        source = self.batch(previous_batch_id)
        if not source.is_triggered:
            raise BatchStateError(
                f"batch {previous_batch_id} is {source.state.value}, "
                "only TRIGGERED batches hold unclaimed output"
            )
        target = self.current_batch(_opposite(source.batch_type))

        payout = source.payout_for(depositor, amount)
        if payout.is_zero:
            raise BatchStateError(f"shares {amount} of batch {previous_batch_id} are worth 0")

        source.take(depositor, amount)
        target.add_deposit(depositor, payout)
        logger.debug(
            "Unclaimed moved",
            extra={
                "from_batch": previous_batch_id,
                "to_batch": target.batch_id,
                "shares": str(amount),
                "moved": str(payout),
            },
        )
        return payout

    # --- Triggers ---

    async def trigger_mint(self, batch_id: int | None = None) -> Batch:
        """Convert the pending mint batch into basket tokens.

        Raises:
            BatchStateError: If batch_id names a batch that is not the
                pending mint batch, or the batch is empty.
            ConversionFailed: If the conversion service rejects the call.
        """
        return await self._trigger(BatchType.MINT, batch_id)

    async def trigger_redeem(self, batch_id: int | None = None) -> Batch:
        """Convert the pending redeem batch back into the base asset.

        Raises:
            BatchStateError: As for trigger_mint.
            ConversionFailed: If the conversion service rejects the call.
        """
        return await self._trigger(BatchType.REDEEM, batch_id)

    async def _trigger(self, batch_type: BatchType, batch_id: int | None) -> Batch:
        batch = self.current_batch(batch_type)
        if batch_id is not None and batch_id != batch.batch_id:
            other = self.batch(batch_id)
            raise BatchStateError(
                f"batch {batch_id} is {other.state.value} {other.batch_type.value}, "
                f"pending {batch_type.value} batch is {batch.batch_id}"
            )
        if batch.supplied.is_zero:
            raise BatchStateError(f"batch {batch.batch_id} is empty")

        convert = self._conversion.mint if batch_type == BatchType.MINT else self._conversion.redeem
        try:
            receipt = await convert(batch.supplied)
        except Exception as exc:
            raise ConversionFailed(
                f"{batch_type.value.lower()} of batch {batch.batch_id} rejected: {exc}"
            ) from exc

        batch.trigger(receipt.output_amount, receipt.basket, receipt.marker)
        self._open(batch_type)
        logger.info(
            "Batch triggered",
            extra={
                "batch_id": batch.batch_id,
                "batch_type": batch_type.value,
                "supplied": str(batch.supplied),
                "output": str(receipt.output_amount),
                "block": receipt.marker.block,
            },
        )
        return batch

    # --- Claims ---

    def claim(self, batch_id: int, recipient: str = DEFAULT_ACCOUNT) -> FixedPoint:
        """Pay out the recipient's full share of a triggered batch.

        Raises:
            NothingToClaim: If the recipient holds no shares in the batch.
            BatchStateError: If the batch has not been triggered.
        """
        batch = self.batch(batch_id)
        amount = batch.take(recipient, batch.share_of(recipient))
        logger.debug(
            "Batch claimed",
            extra={"batch_id": batch_id, "amount": str(amount), "state": batch.state.value},
        )
        return amount
