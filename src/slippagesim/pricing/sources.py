"""Price source protocol.

Price sources are external collaborators (pool contracts, vaults, an RPC
node). The simulator only needs one call from each of them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from slippagesim.fixed_point import FixedPoint


class PriceSource(Protocol):
    """Answers the current unit price for a reference key.

    Returns None when the source has no answer. Raising is treated the
    same way by the aggregator.
    """

    @property
    def name(self) -> str: ...

    async def current_price(self, ref: str) -> FixedPoint | None: ...
