"""Batch ledger tests.

Covers the PENDING -> TRIGGERED -> CLAIMED lifecycle, pro-rata payouts,
moving unclaimed output between directions, and conversion failures.
"""

from __future__ import annotations

import pytest

from slippagesim.basket import Basket, Component
from slippagesim.contracts import BatchState, BatchType
from slippagesim.errors import (
    BatchStateError,
    ConversionFailed,
    ConversionRejected,
    NothingToClaim,
)
from slippagesim.fixed_point import ZERO, FixedPoint
from slippagesim.ledger import BatchLedger, ConversionReceipt
from slippagesim.markers import Marker


def fp(value: str) -> FixedPoint:
    return FixedPoint.from_decimal(value)


class FixedRateConversion:
    """Mints at a fixed rate into a two-component basket; redeems at the inverse."""

    def __init__(self, rate: str = "0.5", reject: bool = False) -> None:
        self.rate = fp(rate)
        self.reject = reject
        self.block = 100
        self.calls: list[tuple[str, FixedPoint]] = []

    def _mine(self) -> Marker:
        self.block += 1
        return Marker(self.block, self.block * 12)

    async def mint(self, amount: FixedPoint) -> ConversionReceipt:
        self.calls.append(("mint", amount))
        if self.reject:
            raise ConversionRejected("insufficient liquidity")
        tokens = amount.mul(self.rate)
        half = tokens.divide_by(2)
        basket = Basket.of([Component("a", half), Component("b", half)])
        return ConversionReceipt(output_amount=tokens, marker=self._mine(), basket=basket)

    async def redeem(self, amount: FixedPoint) -> ConversionReceipt:
        self.calls.append(("redeem", amount))
        if self.reject:
            raise ConversionRejected("paused")
        return ConversionReceipt(output_amount=amount.div(self.rate), marker=self._mine())


@pytest.fixture
def conversion() -> FixedRateConversion:
    return FixedRateConversion()


@pytest.fixture
def ledger(conversion: FixedRateConversion) -> BatchLedger:
    return BatchLedger(conversion)


class TestInitialState:
    """Test the ledger opens one pending batch per direction."""

    def test_pending_batches_open(self, ledger: BatchLedger) -> None:
        mint = ledger.batch(ledger.current_mint_batch_id)
        redeem = ledger.batch(ledger.current_redeem_batch_id)
        assert mint.batch_type == BatchType.MINT
        assert redeem.batch_type == BatchType.REDEEM
        assert mint.state == redeem.state == BatchState.PENDING
        assert ledger.current_mint_batch_id < ledger.current_redeem_batch_id

    def test_unknown_batch(self, ledger: BatchLedger) -> None:
        with pytest.raises(KeyError):
            ledger.batch(999)


class TestDeposit:
    """Test deposits into the pending mint batch."""

    def test_deposit_accumulates(self, ledger: BatchLedger) -> None:
        batch_id = ledger.deposit(fp("60"), "alice")
        assert ledger.deposit(fp("40"), "bob") == batch_id
        batch = ledger.batch(batch_id)
        assert batch.supplied == fp("100")
        assert batch.share_of("alice") == fp("60")
        assert batch.share_of("bob") == fp("40")

    def test_zero_deposit_rejected(self, ledger: BatchLedger) -> None:
        with pytest.raises(ValueError):
            ledger.deposit(ZERO)

    @pytest.mark.asyncio
    async def test_deposit_into_triggered_batch_rejected(self, ledger: BatchLedger) -> None:
        batch_id = ledger.deposit(fp("10"))
        batch = await ledger.trigger_mint()
        assert batch.batch_id == batch_id
        with pytest.raises(BatchStateError, match="PENDING"):
            batch.add_deposit("simulator", fp("1"))


class TestTriggerMint:
    """Test the PENDING -> TRIGGERED transition."""

    @pytest.mark.asyncio
    async def test_trigger_records_result(
        self, ledger: BatchLedger, conversion: FixedRateConversion
    ) -> None:
        batch_id = ledger.deposit(fp("100"))
        batch = await ledger.trigger_mint(batch_id)

        assert batch.state == BatchState.TRIGGERED
        assert batch.output_amount == fp("50")
        assert batch.claimable == fp("50")
        assert batch.marker == Marker(101, 1212)
        assert batch.basket is not None
        assert batch.basket.quantity_of("a") == fp("25")
        assert conversion.calls == [("mint", fp("100"))]

    @pytest.mark.asyncio
    async def test_trigger_opens_new_pending_batch(self, ledger: BatchLedger) -> None:
        first = ledger.deposit(fp("1"))
        await ledger.trigger_mint()
        assert ledger.current_mint_batch_id > first
        assert ledger.batch(ledger.current_mint_batch_id).state == BatchState.PENDING

    @pytest.mark.asyncio
    async def test_trigger_twice_rejected(self, ledger: BatchLedger) -> None:
        batch_id = ledger.deposit(fp("1"))
        await ledger.trigger_mint(batch_id)
        with pytest.raises(BatchStateError, match="TRIGGERED"):
            await ledger.trigger_mint(batch_id)

    @pytest.mark.asyncio
    async def test_batch_trigger_twice_rejected(self, ledger: BatchLedger) -> None:
        ledger.deposit(fp("1"))
        batch = await ledger.trigger_mint()
        with pytest.raises(BatchStateError, match="cannot trigger again"):
            batch.trigger(fp("1"), Basket(), Marker(1))

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(
        self, ledger: BatchLedger, conversion: FixedRateConversion
    ) -> None:
        with pytest.raises(BatchStateError, match="empty"):
            await ledger.trigger_mint()
        assert conversion.calls == []

    @pytest.mark.asyncio
    async def test_rejection_is_conversion_failed(self) -> None:
        ledger = BatchLedger(FixedRateConversion(reject=True))
        batch_id = ledger.deposit(fp("1"))
        with pytest.raises(ConversionFailed, match="insufficient liquidity") as exc_info:
            await ledger.trigger_mint()
        assert isinstance(exc_info.value.__cause__, ConversionRejected)
        assert ledger.batch(batch_id).state == BatchState.PENDING
        assert ledger.current_mint_batch_id == batch_id

    @pytest.mark.asyncio
    async def test_basket_is_stable(self, ledger: BatchLedger) -> None:
        batch_id = ledger.deposit(fp("100"))
        await ledger.trigger_mint()
        first = ledger.batch(batch_id).conversion_result()
        ledger.claim(batch_id)
        assert ledger.batch(batch_id).conversion_result() == first

    def test_conversion_result_before_trigger(self, ledger: BatchLedger) -> None:
        with pytest.raises(BatchStateError):
            ledger.batch(ledger.current_mint_batch_id).conversion_result()


class TestClaim:
    """Test pro-rata claims and the TRIGGERED -> CLAIMED transition."""

    @pytest.mark.asyncio
    async def test_pro_rata_claims(self, ledger: BatchLedger) -> None:
        batch_id = ledger.deposit(fp("75"), "alice")
        ledger.deposit(fp("25"), "bob")
        await ledger.trigger_mint()

        assert ledger.claim(batch_id, "alice") == fp("37.5")
        assert ledger.batch(batch_id).state == BatchState.TRIGGERED
        assert ledger.claim(batch_id, "bob") == fp("12.5")
        assert ledger.batch(batch_id).state == BatchState.CLAIMED
        assert ledger.batch(batch_id).claimable == ZERO

    @pytest.mark.asyncio
    async def test_nothing_to_claim(self, ledger: BatchLedger) -> None:
        batch_id = ledger.deposit(fp("1"), "alice")
        await ledger.trigger_mint()
        with pytest.raises(NothingToClaim):
            ledger.claim(batch_id, "mallory")

    @pytest.mark.asyncio
    async def test_claim_twice(self, ledger: BatchLedger) -> None:
        batch_id = ledger.deposit(fp("1"))
        await ledger.trigger_mint()
        ledger.claim(batch_id)
        with pytest.raises(NothingToClaim):
            ledger.claim(batch_id)

    def test_claim_pending_rejected(self, ledger: BatchLedger) -> None:
        batch_id = ledger.deposit(fp("1"))
        with pytest.raises(BatchStateError):
            ledger.claim(batch_id)


class TestMoveUnclaimed:
    """Test moving unclaimed output into the opposite pending batch."""

    @pytest.mark.asyncio
    async def test_move_into_redeem_batch(self, ledger: BatchLedger) -> None:
        mint_id = ledger.deposit(fp("100"))
        await ledger.trigger_mint()

        moved = ledger.move_unclaimed(mint_id, fp("100"))

        assert moved == fp("50")
        assert ledger.batch(mint_id).state == BatchState.CLAIMED
        redeem = ledger.batch(ledger.current_redeem_batch_id)
        assert redeem.supplied == fp("50")
        assert redeem.share_of("simulator") == fp("50")

    @pytest.mark.asyncio
    async def test_partial_move(self, ledger: BatchLedger) -> None:
        mint_id = ledger.deposit(fp("100"))
        await ledger.trigger_mint()

        assert ledger.move_unclaimed(mint_id, fp("40")) == fp("20")
        mint = ledger.batch(mint_id)
        assert mint.state == BatchState.TRIGGERED
        assert mint.unclaimed_shares == fp("60")
        assert mint.claimable == fp("30")

    @pytest.mark.asyncio
    async def test_move_exceeding_balance_leaves_state(self, ledger: BatchLedger) -> None:
        mint_id = ledger.deposit(fp("100"))
        await ledger.trigger_mint()
        redeem_id = ledger.current_redeem_batch_id

        mint = ledger.batch(mint_id)
        redeem = ledger.batch(redeem_id)
        before = (mint.state, mint.unclaimed_shares, mint.claimable, dict(mint.shares))

        with pytest.raises(BatchStateError, match="requested"):
            ledger.move_unclaimed(mint_id, fp("100.000000000000000001"))

        assert (mint.state, mint.unclaimed_shares, mint.claimable, dict(mint.shares)) == before
        assert redeem.supplied == ZERO
        assert redeem.shares == {}
        assert redeem.state == BatchState.PENDING

    def test_move_from_pending_rejected(self, ledger: BatchLedger) -> None:
        mint_id = ledger.deposit(fp("1"))
        with pytest.raises(BatchStateError, match="TRIGGERED"):
            ledger.move_unclaimed(mint_id, fp("1"))

    @pytest.mark.asyncio
    async def test_move_without_shares(self, ledger: BatchLedger) -> None:
        mint_id = ledger.deposit(fp("1"), "alice")
        await ledger.trigger_mint()
        with pytest.raises(NothingToClaim):
            ledger.move_unclaimed(mint_id, fp("1"), "bob")


class TestRedeem:
    """Test the full mint -> move -> redeem -> claim round trip."""

    @pytest.mark.asyncio
    async def test_round_trip(self, ledger: BatchLedger, conversion: FixedRateConversion) -> None:
        mint_id = ledger.deposit(fp("100"))
        await ledger.trigger_mint()
        ledger.move_unclaimed(mint_id, fp("100"))

        redeem = await ledger.trigger_redeem()
        assert redeem.batch_type == BatchType.REDEEM
        assert redeem.state == BatchState.TRIGGERED
        assert ledger.claim(redeem.batch_id) == fp("100")
        assert redeem.state == BatchState.CLAIMED
        assert conversion.calls == [("mint", fp("100")), ("redeem", fp("50"))]

    @pytest.mark.asyncio
    async def test_direct_redeem_deposits(self, ledger: BatchLedger, conversion: FixedRateConversion) -> None:
        redeem_id = ledger.current_redeem_batch_id
        assert ledger.deposit_for_redeem(fp("30"), "alice") == redeem_id
        assert ledger.deposit_for_redeem(fp("20"), "bob") == redeem_id
        assert ledger.batch(redeem_id).supplied == fp("50")
        assert ledger.batch(ledger.current_mint_batch_id).supplied == ZERO

        redeem = await ledger.trigger_redeem()
        assert redeem.batch_id == redeem_id
        assert conversion.calls == [("redeem", fp("50"))]
        assert ledger.claim(redeem_id, "alice") == fp("60")
        assert ledger.claim(redeem_id, "bob") == fp("40")

        # the next redeem deposit lands in the freshly opened batch
        assert ledger.deposit_for_redeem(fp("1")) > redeem_id

    def test_zero_redeem_deposit_rejected(self, ledger: BatchLedger) -> None:
        with pytest.raises(ValueError):
            ledger.deposit_for_redeem(ZERO)

    @pytest.mark.asyncio
    async def test_batch_ids_increase(self, ledger: BatchLedger) -> None:
        ids = [ledger.current_mint_batch_id, ledger.current_redeem_batch_id]
        for _ in range(3):
            mint_id = ledger.deposit(fp("10"))
            await ledger.trigger_mint()
            ledger.move_unclaimed(mint_id, fp("10"))
            redeem = await ledger.trigger_redeem()
            ledger.claim(redeem.batch_id)
            ids.extend([ledger.current_mint_batch_id, ledger.current_redeem_batch_id])
        assert ids == sorted(set(ids))

    @pytest.mark.asyncio
    async def test_redeem_rejected(self) -> None:
        conversion = FixedRateConversion()
        ledger = BatchLedger(conversion)
        mint_id = ledger.deposit(fp("10"))
        await ledger.trigger_mint()
        ledger.move_unclaimed(mint_id, fp("10"))
        conversion.reject = True
        with pytest.raises(ConversionFailed, match="paused"):
            await ledger.trigger_redeem()
