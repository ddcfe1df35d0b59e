"""
Error types for the Resource Allocation Graph Deadlock Engine.

Expected denials (order violations, insufficient resources, over-release)
are normally returned as typed results by the engine. The exceptions here
are raised for caller mistakes and can be raised on demand from results.
"""

from typing import Optional


class DeadlockEngineError(Exception):
    """Base class for all engine errors."""
    pass


class InvalidArgument(DeadlockEngineError, ValueError):
    """Out-of-range process/resource index, non-positive units, or malformed input."""
    pass


class InvalidOperation(DeadlockEngineError):
    """A ledger precondition was violated (e.g. releasing more than is held)."""
    pass


class InsufficientResources(DeadlockEngineError):
    """Requested units exceed the available instances of a resource type."""

    def __init__(self, resource: int, requested: int, available: int):
        self.resource = resource
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient resources for R{resource} "
            f"(requested: {requested}, available: {available})"
        )


class OrderViolation(DeadlockEngineError):
    """A request would acquire a resource ranked below one already held."""

    def __init__(self, process: int, held: int, requested: int,
                 held_position: Optional[int] = None,
                 requested_position: Optional[int] = None):
        self.process = process
        self.held = held
        self.requested = requested
        self.held_position = held_position
        self.requested_position = requested_position
        super().__init__(
            f"P{process} holds R{held} (order index {held_position}), "
            f"cannot request R{requested} (order index {requested_position})"
        )


class MalformedOrder(DeadlockEngineError):
    """A resource order that is not a permutation of the resource indices."""
    pass
