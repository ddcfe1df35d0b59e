"""
Graph reduction check for the Resource Allocation Graph Deadlock Engine.

With multi-instance resources a cycle in the allocation graph is necessary
but not sufficient for deadlock. The Work/Finish reduction answers the
stronger question: which processes can never have their pending requests
satisfied?
"""

import numpy as np
from typing import Iterable, List

from models.ledger import ResourceLedger


def find_deadlocked_processes(ledger: ResourceLedger, finished: Iterable[int] = ()) -> List[int]:
    """
    Reduce the allocation graph with the matrix-based Work/Finish algorithm.

    Algorithm (Multi-Instance Resources):
    1. Initialize Work = Available.copy(), Finish = [False] * num_processes
    2. Set Finish[i] = True for processes listed in finished (e.g. terminated)
    3. Find process i where Finish[i] == False and Request[i] <= Work (element-wise)
    4. If found: Finish[i] = True, Work += Allocation[i], repeat step 3
    5. If no such process: every i with Finish[i] == False is deadlocked

    Uses Request[i] (current pending request), since processes here declare
    no maximum demand.

    Time Complexity: O(P^2 x R)

    Args:
        ledger: Current ledger
        finished: Process indices to treat as already complete

    Returns:
        Ascending list of deadlocked process indices (empty if none)
    """
    work = ledger.available.copy()
    finish = np.zeros(ledger.num_processes, dtype=bool)

    for pid in finished:
        finish[pid] = True

    found_progress = True
    while found_progress:
        found_progress = False

        for i in range(ledger.num_processes):
            if finish[i]:
                continue

            if np.all(ledger.requested[i] <= work):
                work += ledger.allocated[i]
                finish[i] = True
                found_progress = True
                # Restart search from beginning for deterministic behavior
                break

    return [int(i) for i in np.flatnonzero(~finish)]
