"""
Deadlock Prevention by Resource Ordering for the Deadlock Engine.

Every resource type gets a position in a fixed total order. A process may
only request a resource ranked at or above every resource it already holds,
which rules out circular wait (Havender's ordered-resource discipline).
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from models.errors import MalformedOrder, OrderViolation
from models.ledger import ResourceLedger


def identity_order(num_resources: int) -> List[int]:
    return list(range(num_resources))


def validate_order(order: Sequence[int], num_resources: int) -> None:
    """
    Check that order is a permutation of [0, num_resources).

    Raises:
        MalformedOrder: Describing the first problem found
    """
    if not isinstance(order, (list, tuple, np.ndarray)):
        raise MalformedOrder(f"Order must be a sequence of resource indices, got {order!r}")
    if len(order) != num_resources:
        raise MalformedOrder(
            f"Order has {len(order)} entries, expected {num_resources}"
        )
    seen = set()
    for index, resource in enumerate(order):
        if not isinstance(resource, (int, np.integer)) or not 0 <= resource < num_resources:
            raise MalformedOrder(
                f"Order entry {index} ({resource}) is not a resource index "
                f"in 0..{num_resources - 1}"
            )
        if resource in seen:
            raise MalformedOrder(f"Resource R{resource} appears more than once in order")
        seen.add(resource)


@dataclass
class OrderResult:
    """
    Outcome of setting a resource order.

    Attributes:
        accepted: False if the supplied order was malformed and identity was used
        effective_order: Order now in force
        warning: Why the order was rejected (empty when accepted)
    """
    accepted: bool
    effective_order: List[int]
    warning: str = ""


@dataclass
class ResourceOrder:
    """
    Total order over resource types.

    order[k] is the resource at position k; position_of[r] is the inverse.
    """
    num_resources: int
    order: List[int] = field(default_factory=list)

    def __post_init__(self):
        if not self.order:
            self.order = identity_order(self.num_resources)
        else:
            validate_order(self.order, self.num_resources)
            self.order = list(self.order)
        self._rebuild_positions()

    def _rebuild_positions(self) -> None:
        self.position_of = [0] * self.num_resources
        for position, resource in enumerate(self.order):
            self.position_of[resource] = position

    def set_order(self, order: Sequence[int]) -> OrderResult:
        """
        Replace the order, falling back to identity if it is not a permutation.

        Returns:
            OrderResult; a malformed order is reported through the warning,
            never raised
        """
        try:
            validate_order(order, self.num_resources)
        except MalformedOrder as e:
            self.order = identity_order(self.num_resources)
            self._rebuild_positions()
            return OrderResult(
                accepted=False,
                effective_order=list(self.order),
                warning=f"{e}; using default order {self.order}"
            )

        self.order = list(order)
        self._rebuild_positions()
        return OrderResult(accepted=True, effective_order=list(self.order))


def find_violation(
    process: int,
    requested_resource: int,
    ledger: ResourceLedger,
    order: ResourceOrder
) -> Optional[OrderViolation]:
    """
    Find a held resource that outranks the requested one.

    Held resources are checked in ascending index order and the first
    offending one is reported. Holding nothing, or requesting a resource at
    an equal position, never violates.

    Returns:
        OrderViolation describing the held/requested pair, or None
    """
    requested_position = order.position_of[requested_resource]

    for held in ledger.held_resources(process):
        held_position = order.position_of[held]
        if requested_position < held_position:
            return OrderViolation(
                process=process,
                held=held,
                requested=requested_resource,
                held_position=held_position,
                requested_position=requested_position
            )

    return None


def permits(
    process: int,
    requested_resource: int,
    ledger: ResourceLedger,
    order: ResourceOrder
) -> bool:
    """True if the request respects the resource order."""
    return find_violation(process, requested_resource, ledger, order) is None
