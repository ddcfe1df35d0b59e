"""
Resource Ledger for the Resource Allocation Graph Deadlock Engine.

Owns the total/available vectors and the allocation/request matrices.
Every mutation goes through a ledger method; each method checks all of
its preconditions before touching any array so a failed call leaves the
ledger unchanged.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence

from models.errors import InvalidArgument, InvalidOperation


def _read_only(array: np.ndarray) -> np.ndarray:
    """Return a non-writeable view so callers cannot bypass the ledger."""
    view = array.view()
    view.flags.writeable = False
    return view


def _as_counts(values, name: str) -> np.ndarray:
    """Convert to an int array, rejecting ragged, non-numeric or fractional input."""
    try:
        raw = np.array(values)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"{name} is not a rectangular array of counts: {e}")

    if raw.dtype != bool and np.issubdtype(raw.dtype, np.integer):
        return raw.astype(int)
    if raw.size == 0:
        return raw.astype(int)
    if np.issubdtype(raw.dtype, np.floating):
        if np.all(np.isfinite(raw)) and np.all(raw == np.floor(raw)):
            return raw.astype(int)
        raise InvalidArgument(f"{name} must contain whole numbers, got {raw.tolist()}")
    raise InvalidArgument(f"{name} must contain integer counts, got {values!r}")


def _as_vector(values: Sequence[int], length: int, name: str) -> np.ndarray:
    vector = _as_counts(values, name)
    if vector.shape != (length,):
        raise InvalidArgument(f"{name} must have {length} entries, got shape {vector.shape}")
    if np.any(vector < 0):
        raise InvalidArgument(f"{name} cannot contain negative counts: {list(vector)}")
    return vector


def _as_matrix(values: Optional[Sequence[Sequence[int]]], rows: int, cols: int, name: str) -> np.ndarray:
    if values is None:
        return np.zeros((rows, cols), dtype=int)
    matrix = _as_counts(values, name)
    if matrix.shape != (rows, cols):
        raise InvalidArgument(f"{name} must be {rows}x{cols}, got shape {matrix.shape}")
    if np.any(matrix < 0):
        raise InvalidArgument(f"{name} cannot contain negative counts")
    return matrix


class ResourceLedger:
    """
    Single source of truth for resource accounting.

    Attributes:
        num_processes: P, fixed for the session
        num_resources: R, fixed for the session
        total: [R] Total instances per resource type (constant)
        available: [R] Free instances per resource type
        allocated: [P][R] Instances held by each process
        requested: [P][R] Pending request per process and resource type

    Invariant:
        available[j] + sum(allocated[:, j]) == total[j] for every j
    """

    def __init__(
        self,
        num_processes: int,
        num_resources: int,
        total: Sequence[int],
        available: Sequence[int],
        allocated: Optional[Sequence[Sequence[int]]] = None,
        requested: Optional[Sequence[Sequence[int]]] = None
    ):
        if num_processes <= 0:
            raise InvalidArgument(f"Process count must be positive, got {num_processes}")
        if num_resources <= 0:
            raise InvalidArgument(f"Resource count must be positive, got {num_resources}")

        self.num_processes = num_processes
        self.num_resources = num_resources

        self._total = _as_vector(total, num_resources, "total")
        self._available = _as_vector(available, num_resources, "available")
        self._allocated = _as_matrix(allocated, num_processes, num_resources, "allocation")
        self._requested = _as_matrix(requested, num_processes, num_resources, "request")

        if np.any(self._available > self._total):
            raise InvalidArgument(
                f"available {list(self._available)} exceeds total {list(self._total)}"
            )

        # Initial state must already satisfy conservation
        held = self._allocated.sum(axis=0)
        mismatched = [j for j in range(num_resources)
                      if self._available[j] + held[j] != self._total[j]]
        if mismatched:
            details = ", ".join(
                f"R{j}: available={self._available[j]} + allocated={held[j]} != total={self._total[j]}"
                for j in mismatched
            )
            raise InvalidArgument(f"Initial state violates resource conservation ({details})")

    @property
    def total(self) -> np.ndarray:
        return _read_only(self._total)

    @property
    def available(self) -> np.ndarray:
        return _read_only(self._available)

    @property
    def allocated(self) -> np.ndarray:
        return _read_only(self._allocated)

    @property
    def requested(self) -> np.ndarray:
        return _read_only(self._requested)

    def check_process(self, process: int) -> None:
        """Raise InvalidArgument unless process is in [0, P)."""
        if not isinstance(process, (int, np.integer)) or not 0 <= process < self.num_processes:
            raise InvalidArgument(
                f"Invalid process index {process} (expected 0..{self.num_processes - 1})"
            )

    def check_resource(self, resource: int) -> None:
        """Raise InvalidArgument unless resource is in [0, R)."""
        if not isinstance(resource, (int, np.integer)) or not 0 <= resource < self.num_resources:
            raise InvalidArgument(
                f"Invalid resource index {resource} (expected 0..{self.num_resources - 1})"
            )

    def check_units(self, units: int) -> None:
        if not isinstance(units, (int, np.integer)) or units <= 0:
            raise InvalidArgument(f"Unit count must be a positive integer, got {units}")

    def grant(self, process: int, resource: int, units: int) -> None:
        """
        Move units from the available pool to the process.

        Clears the process's pending request for this resource type.

        Raises:
            InvalidOperation: If fewer than units instances are available
        """
        self.check_process(process)
        self.check_resource(resource)
        self.check_units(units)
        if self._available[resource] < units:
            raise InvalidOperation(
                f"Cannot grant R{resource}[{units}] to P{process} - "
                f"only {self._available[resource]} available"
            )

        self._available[resource] -= units
        self._allocated[process][resource] += units
        self._requested[process][resource] = 0

    def release(self, process: int, resource: int, units: int) -> None:
        """
        Return units held by the process to the available pool.

        Raises:
            InvalidOperation: If the process holds fewer than units instances
        """
        self.check_process(process)
        self.check_resource(resource)
        self.check_units(units)
        if self._allocated[process][resource] < units:
            raise InvalidOperation(
                f"P{process}: Cannot release R{resource}[{units}] - "
                f"only holding {self._allocated[process][resource]}"
            )

        self._allocated[process][resource] -= units
        self._available[resource] += units

    def record_request(self, process: int, resource: int, units: int) -> None:
        """Set the pending request; a later request overwrites, it does not queue."""
        self.check_process(process)
        self.check_resource(resource)
        self.check_units(units)
        self._requested[process][resource] = units

    def clear_request(self, process: int, resource: int) -> None:
        self.check_process(process)
        self.check_resource(resource)
        self._requested[process][resource] = 0

    def force_release_all(self, process: int) -> List[int]:
        """
        Release every resource the process holds and drop all its requests.

        Used when a process is killed to break a deadlock.

        Returns:
            List of released amounts by resource type
        """
        self.check_process(process)
        released = self._allocated[process].copy()

        self._available += released
        self._allocated[process] = 0
        self._requested[process] = 0

        return [int(units) for units in released]

    def held_resources(self, process: int) -> List[int]:
        """Resource indices the process currently holds, ascending."""
        self.check_process(process)
        return [int(j) for j in np.flatnonzero(self._allocated[process] > 0)]

    def snapshot(self) -> Dict[str, np.ndarray]:
        """
        Independent copies of all ledger arrays.

        Returns:
            Dictionary with 'total', 'available', 'allocated' and 'requested'
        """
        return {
            'total': self._total.copy(),
            'available': self._available.copy(),
            'allocated': self._allocated.copy(),
            'requested': self._requested.copy(),
        }

    def assert_conservation(self, context: str = "") -> None:
        """Verify resource conservation: allocated + available = total for all resources.

        Args:
            context: Description of when this check is being run (for error messages)

        Raises:
            AssertionError: If resource conservation is violated
        """
        held = self._allocated.sum(axis=0)

        for r_idx in range(self.num_resources):
            allocated = held[r_idx]
            available = self._available[r_idx]
            total = self._total[r_idx]

            assert allocated + available == total, (
                f"Resource conservation violated for R{r_idx} {context}\n"
                f"  Allocated: {allocated}, Available: {available}, Total: {total}\n"
                f"  Allocated + Available = {allocated + available} != {total}"
            )

            assert available >= 0, (
                f"Negative available resources for R{r_idx} {context}\n"
                f"  Available: {available}"
            )

    def __repr__(self) -> str:
        return (
            f"ResourceLedger(P={self.num_processes}, R={self.num_resources}, "
            f"available={list(self._available)})"
        )
