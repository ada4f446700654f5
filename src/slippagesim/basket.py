"""Basket and component models.

A Basket is the set of component assets a mint produces (or a redeem
consumes). It carries quantities only: prices drift between cycles, so
values are always recomputed by the BasketValuator.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from slippagesim.fixed_point import ZERO, FixedPoint


@dataclass(frozen=True)
class Component:
    """One component asset and the quantity held of it.

    pool_ref and vault_ref are the keys the two price sources know the
    component by. Both default to component_id.
    """

    component_id: str
    quantity: FixedPoint = ZERO
    pool_ref: str = ""
    vault_ref: str = ""

    def __post_init__(self) -> None:
        if not self.component_id:
            raise ValueError("component_id cannot be empty")
        if not isinstance(self.quantity, FixedPoint):
            raise TypeError(f"quantity must be FixedPoint, got {type(self.quantity).__name__}")
        if not self.pool_ref:
            object.__setattr__(self, "pool_ref", self.component_id)
        if not self.vault_ref:
            object.__setattr__(self, "vault_ref", self.component_id)

    def with_quantity(self, quantity: FixedPoint) -> Component:
        return Component(self.component_id, quantity, self.pool_ref, self.vault_ref)


@dataclass(frozen=True)
class Basket:
    """Immutable ordered set of unique components."""

    components: tuple[Component, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        comps = tuple(self.components)
        object.__setattr__(self, "components", comps)
        ids = [c.component_id for c in comps]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate component ids in basket: {ids}")

    @classmethod
    def of(cls, components: Iterable[Component]) -> Basket:
        return cls(tuple(components))

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)

    @property
    def is_empty(self) -> bool:
        return not self.components

    def sorted_components(self) -> list[Component]:
        """Components in deterministic (identifier) order."""
        return sorted(self.components, key=lambda c: c.component_id)

    def quantity_of(self, component_id: str) -> FixedPoint:
        for component in self.components:
            if component.component_id == component_id:
                return component.quantity
        raise KeyError(component_id)


EMPTY_BASKET = Basket()
