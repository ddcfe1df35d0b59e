"""
Deadlock Recovery Algorithm for the Resource Allocation Graph Deadlock Engine.

Breaks a detected cycle by terminating processes on it. Termination
releases everything the victim holds and drops its pending requests.
"""

from typing import List, Optional, Tuple

from models.cycle import CycleRecord, GraphMode
from models.errors import InvalidArgument
from models.ledger import ResourceLedger
from models.process import Process
from models.wait_for_graph import WaitForGraph


VICTIM_POLICIES = ("all_on_cycle", "fewest_held")


def validate_cycle(cycle: CycleRecord, ledger: ResourceLedger) -> None:
    """
    Reject a cycle record that no longer fits the current ledger.

    Raises:
        InvalidArgument: If the record was computed for a different process
                         count or names nodes out of range
    """
    if not cycle.nodes:
        raise InvalidArgument("Cycle record has no nodes")
    if cycle.num_processes != ledger.num_processes:
        raise InvalidArgument(
            f"Stale cycle record: computed for {cycle.num_processes} processes, "
            f"ledger has {ledger.num_processes}"
        )

    if cycle.mode == GraphMode.WAIT_FOR_GRAPH:
        node_count = ledger.num_processes
    else:
        node_count = ledger.num_processes + ledger.num_resources

    for node in (*cycle.nodes, cycle.closing_node):
        if not 0 <= node < node_count:
            raise InvalidArgument(
                f"Stale cycle record: node {node} outside 0..{node_count - 1}"
            )


def select_victims(
    cycle: CycleRecord,
    ledger: ResourceLedger,
    policy: str = "all_on_cycle"
) -> List[int]:
    """
    Select victim processes for termination.

    Policies:
    - "all_on_cycle": every distinct process on the cycle, ascending
    - "fewest_held": the single process on the cycle holding the fewest
      units (minimize waste), ties broken by lowest index

    Killing any one process on a cycle removes its edges, so both policies
    break the reported cycle.

    Args:
        cycle: Cycle to break
        ledger: Current ledger
        policy: Selection policy

    Returns:
        Ascending list of victim process indices
    """
    candidates = cycle.process_ids()

    if policy == "all_on_cycle":
        return candidates

    elif policy == "fewest_held":
        if not candidates:
            return []

        def count_resources(pid):
            return int(ledger.allocated[pid].sum())

        return [min(candidates, key=lambda pid: (count_resources(pid), pid))]

    else:
        raise InvalidArgument(
            f"Unknown victim policy '{policy}' (expected one of {', '.join(VICTIM_POLICIES)})"
        )


def terminate_process(
    pid: int,
    ledger: ResourceLedger,
    process: Process,
    wait_for_graph: Optional[WaitForGraph] = None
) -> List[int]:
    """
    Terminate a process and release all its resources.

    Process termination:
    - Release all allocated resources back to Available
    - Clear the pending request row
    - Drop the process's wait-for edges, if a wait-for graph is given
    - Set state to TERMINATED

    Args:
        pid: Process index to terminate
        ledger: Current ledger
        process: State record for the process
        wait_for_graph: Caller-supplied wait-for graph to clean up

    Returns:
        Released amounts by resource type
    """
    released = ledger.force_release_all(pid)
    if wait_for_graph is not None:
        wait_for_graph.remove_process(pid)
    process.terminate()

    # SANITY CHECK: Verify resource conservation after termination
    ledger.assert_conservation(f"after terminating P{pid}")

    return released


def recover_from_deadlock(
    cycle: CycleRecord,
    ledger: ResourceLedger,
    processes: List[Process],
    wait_for_graph: Optional[WaitForGraph] = None,
    policy: str = "all_on_cycle"
) -> List[Tuple[int, List[int]]]:
    """
    Recover from deadlock by terminating victims on the reported cycle.

    The record is validated before the first kill. Each victim is killed
    exactly once, in ascending index order. Only the reported cycle is
    guaranteed broken; callers should re-run detection for others.

    Args:
        cycle: Cycle record from detection
        ledger: Current ledger
        processes: Per-process state records, indexed by pid
        wait_for_graph: Wait-for graph to clean up (wait-for mode)
        policy: Victim selection policy

    Returns:
        List of (pid, released amounts by resource type)
    """
    validate_cycle(cycle, ledger)
    victims = select_victims(cycle, ledger, policy)

    results = []
    for pid in victims:
        released = terminate_process(pid, ledger, processes[pid], wait_for_graph)
        results.append((pid, released))

    return results


def format_released(released: List[int]) -> str:
    """Describe released units, e.g. 'R0[1], R2[3]' or 'none'."""
    parts = [f"R{i}[{units}]" for i, units in enumerate(released) if units > 0]
    return ", ".join(parts) if parts else "none"
