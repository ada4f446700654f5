"""Progress markers and the block source protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, order=True)
class Marker:
    """Block number plus block timestamp. Ordered by block first."""

    block: int
    timestamp: int = 0

    def __post_init__(self) -> None:
        if self.block < 0:
            raise ValueError(f"block must be non-negative, got {self.block}")
        if self.timestamp < 0:
            raise ValueError(f"timestamp must be non-negative, got {self.timestamp}")


class BlockSource(Protocol):
    """Reports chain progress and, in simulation, fast-forwards it."""

    def current_marker(self) -> Marker: ...

    def advance(self, blocks: int) -> Marker: ...
