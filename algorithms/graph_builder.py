"""
Graph construction for the Resource Allocation Graph Deadlock Engine.

Derives adjacency matrices from a ledger snapshot. Node numbering for the
allocation graph: process i is node i, resource j is node P + j.
"""

import numpy as np
from typing import List, Tuple

from models.ledger import ResourceLedger


def build_allocation_graph(ledger: ResourceLedger) -> np.ndarray:
    """
    Build the bipartite allocation graph.

    Edges:
    - Resource(j) -> Process(i) if allocated[i][j] > 0 (holds)
    - Process(i) -> Resource(j) if requested[i][j] > 0 (waits for)

    Args:
        ledger: Current ledger

    Returns:
        Fresh (P+R) x (P+R) boolean adjacency matrix
    """
    num_processes = ledger.num_processes
    node_count = num_processes + ledger.num_resources
    adjacency = np.zeros((node_count, node_count), dtype=bool)

    # Resource rows, process columns
    adjacency[num_processes:, :num_processes] = (ledger.allocated > 0).T
    # Process rows, resource columns
    adjacency[:num_processes, num_processes:] = ledger.requested > 0

    return adjacency


def build_wait_for_graph(ledger: ResourceLedger) -> np.ndarray:
    """
    Reduce the allocation graph to a process-only wait-for graph.

    Edge i -> k iff Pi requests some resource that Pk (k != i) holds.

    Returns:
        Fresh P x P boolean adjacency matrix
    """
    waiting = (ledger.requested > 0).astype(int)
    holding = (ledger.allocated > 0).astype(int)

    adjacency = (waiting @ holding.T) > 0
    np.fill_diagonal(adjacency, False)
    return adjacency


def node_label(node: int, num_processes: int) -> str:
    if node < num_processes:
        return f"P{node}"
    return f"R{node - num_processes}"


def describe_edges(adjacency: np.ndarray, num_processes: int) -> List[Tuple[str, str]]:
    """
    Labelled edge list in row-major order, e.g. [("P0", "R1"), ("R1", "P1")].

    Pass num_processes equal to the node count for a wait-for graph.
    """
    return [
        (node_label(int(src), num_processes), node_label(int(dst), num_processes))
        for src, dst in zip(*np.nonzero(adjacency))
    ]
