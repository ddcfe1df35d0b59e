"""
Wait-For Graph model for the Resource Allocation Graph Deadlock Engine.

A process-only graph supplied edge by edge by the caller. When prevention
is enabled an edge i -> j is only accepted if j > i, so every accepted
edge points to a higher process index and no cycle can be built.
"""

import numpy as np
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from models.errors import InvalidArgument


class EdgeOutcome(Enum):
    """Result of adding a wait-for edge."""
    ADDED = "ADDED"
    REJECTED_BY_ORDER_RULE = "REJECTED_BY_ORDER_RULE"
    REJECTED_TERMINATED = "REJECTED_TERMINATED"


class WaitForGraph:
    """
    P x P adjacency where edge i -> j means Pi waits on a resource held by Pj.

    Attributes:
        num_processes: Number of processes (graph nodes)
        prevention_enabled: Default for add_edge when no explicit flag is given
    """

    def __init__(self, num_processes: int, prevention_enabled: bool = False):
        if num_processes <= 0:
            raise InvalidArgument(f"Process count must be positive, got {num_processes}")
        self.num_processes = num_processes
        self.prevention_enabled = prevention_enabled
        self._adjacency = np.zeros((num_processes, num_processes), dtype=bool)

    @classmethod
    def from_matrix(
        cls,
        matrix: Sequence[Sequence[int]],
        prevention_enabled: bool = False
    ) -> "WaitForGraph":
        """
        Build a graph from a 0/1 matrix, applying the order rule edge by edge.

        Raises:
            InvalidArgument: If the matrix is not square or holds values other than 0/1
        """
        values = np.array(matrix, dtype=int)
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise InvalidArgument(f"Wait-for matrix must be square, got shape {values.shape}")
        if np.any((values != 0) & (values != 1)):
            raise InvalidArgument("Wait-for matrix entries must be 0 or 1")

        graph = cls(values.shape[0], prevention_enabled)
        for i, j in zip(*np.nonzero(values)):
            graph.add_edge(int(i), int(j))
        return graph

    @property
    def adjacency(self) -> np.ndarray:
        """Copy of the adjacency matrix."""
        return self._adjacency.copy()

    def _check(self, process: int) -> None:
        if not isinstance(process, (int, np.integer)) or not 0 <= process < self.num_processes:
            raise InvalidArgument(
                f"Invalid process index {process} (expected 0..{self.num_processes - 1})"
            )

    def add_edge(self, waiter: int, holder: int,
                 prevention_enabled: Optional[bool] = None) -> EdgeOutcome:
        """
        Add edge waiter -> holder.

        Args:
            waiter: Process that waits
            holder: Process holding the awaited resource
            prevention_enabled: Override the graph's default prevention flag

        Returns:
            ADDED, or REJECTED_BY_ORDER_RULE if prevention forbids the edge
        """
        self._check(waiter)
        self._check(holder)
        if prevention_enabled is None:
            prevention_enabled = self.prevention_enabled

        if prevention_enabled and holder <= waiter:
            return EdgeOutcome.REJECTED_BY_ORDER_RULE

        self._adjacency[waiter][holder] = True
        return EdgeOutcome.ADDED

    def remove_edge(self, waiter: int, holder: int) -> None:
        self._check(waiter)
        self._check(holder)
        self._adjacency[waiter][holder] = False

    def remove_process(self, process: int) -> None:
        """Drop every edge into and out of the process."""
        self._check(process)
        self._adjacency[process, :] = False
        self._adjacency[:, process] = False

    def has_edge(self, waiter: int, holder: int) -> bool:
        return bool(self._adjacency[waiter][holder])

    def edges(self) -> List[Tuple[int, int]]:
        return [(int(i), int(j)) for i, j in zip(*np.nonzero(self._adjacency))]
